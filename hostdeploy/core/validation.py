"""
Validation suite

Runs every check group against a live deployment and records one scored
result per check. Nothing here aborts early except the container-presence
check: without a running container nothing downstream can be tested.
"""

import re
import shlex
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from rich.markup import escape

from hostdeploy.constants import (
    DISK_FAIL_PERCENT,
    DISK_WARN_PERCENT,
    DOCKER_STORAGE_PATH,
    HEALTHY_HTTP_CODES,
    LATENCY_WARN_MS,
    LOCAL_PROBE_TIMEOUT,
    LOG_ERROR_PATTERN,
    LOG_SCAN_LINES,
    MEMORY_WARN_PERCENT,
    PROXY_PORT,
    VALIDATION_COMMAND_TIMEOUT,
)
from hostdeploy.core.containers import RUNNING_NAMES_COMMAND, match_running_container
from hostdeploy.core.parameters import is_secure_key_mode, key_file_mode
from hostdeploy.exceptions import EscalationError, HostDeployError
from hostdeploy.logger import DeployLogger, console
from hostdeploy.models.deployment import DeploymentRecord
from hostdeploy.models.results import CheckResult, CheckStatus, ResultLog, SSHResult
from hostdeploy.services.http_probe import HttpProber, ProbeResult
from hostdeploy.services.ssh_service import RemoteOptions, SSHService

SERVICES = "services"
NETWORK = "network"
RESOURCES = "resources"
SECURITY = "security"

STATUS_STYLES = {
    CheckStatus.PASS: "green",
    CheckStatus.FAIL: "red",
    CheckStatus.WARN: "yellow",
}


@dataclass
class CheckGroup:
    """Named, ordered checks plus informational captures that score nothing."""

    name: str
    title: str
    checks: List[tuple] = field(default_factory=list)
    captures: List[Callable[[], None]] = field(default_factory=list)


class ValidationSuite:
    """Collects a result for every check; never stops on a failure."""

    def __init__(
        self,
        executor: SSHService,
        record: DeploymentRecord,
        logger: DeployLogger,
        prober: Optional[HttpProber] = None,
    ):
        self.executor = executor
        self.record = record
        self.logger = logger
        self.prober = prober or HttpProber()
        self.results = ResultLog()
        self.escalated = False
        self.runtime_name = record.container_name
        self._probe: Optional[ProbeResult] = None

    def groups(self) -> List[CheckGroup]:
        return [
            CheckGroup(
                SERVICES,
                "Validating remote services",
                [
                    ("docker_active", self.check_docker_active),
                    ("nginx_active", self.check_nginx_active),
                    ("container_running", self.check_container_running),
                    ("container_state", self.check_container_state),
                    ("container_logs", self.check_container_logs),
                ],
            ),
            CheckGroup(
                NETWORK,
                "Validating network connectivity",
                [
                    ("container_port", self.check_container_port),
                    ("proxy_local", self.check_proxy_local),
                    ("proxy_syntax", self.check_proxy_syntax),
                    ("external_access", self.check_external_access),
                    ("response_time", self.check_response_time),
                    ("proxy_signature", self.check_proxy_signature),
                ],
            ),
            CheckGroup(
                RESOURCES,
                "Validating system resources",
                [
                    ("disk_usage", self.check_disk_usage),
                    ("memory_usage", self.check_memory_usage),
                ],
                captures=[self.capture_container_stats],
            ),
            CheckGroup(
                SECURITY,
                "Validating security configuration",
                [
                    ("x_frame_options", self.check_frame_options),
                    ("x_content_type_options", self.check_content_type_options),
                    ("container_user", self.check_container_user),
                    ("ssh_key_permissions", self.check_key_permissions),
                ],
            ),
        ]

    def run(self) -> ResultLog:
        """Run all groups in order and return the accumulated results."""
        for group in self.groups():
            self.logger.step(group.title)
            for check_name, check in group.checks:
                try:
                    result = check()
                except EscalationError as e:
                    self._record(group.name, CheckResult.failed(e.check, e.message))
                    self.escalated = True
                    self.logger.log_error(
                        "Container is not running, skipping remaining checks",
                        context=e.context,
                    )
                    return self.results
                except (HostDeployError, OSError) as e:
                    result = CheckResult.failed(check_name, f"Check errored: {e}")
                self._record(group.name, result)

            for capture in group.captures:
                capture()

        return self.results

    def _record(self, group: str, result: CheckResult) -> None:
        result = replace(result, group=group)
        self.results.append(result)

        level = {"PASS": "INFO", "WARN": "WARNING", "FAIL": "ERROR"}[result.status.value]
        self.logger.log(f"[{result.status.value}] {result.message}", level)
        if not self.logger.verbose:
            style = STATUS_STYLES[result.status]
            console.print(
                f"  [{style}]\\[{result.status.value}][/{style}] [dim]{escape(result.message)}[/dim]"
            )

    def _remote(self, command: str) -> SSHResult:
        return self.executor.run(command, RemoteOptions(timeout=VALIDATION_COMMAND_TIMEOUT))

    @property
    def _name(self) -> str:
        return shlex.quote(self.runtime_name)

    def _external_probe(self) -> ProbeResult:
        if self._probe is None:
            self._probe = self.prober.probe(f"http://{self.record.host}")
        return self._probe

    # Services

    def check_docker_active(self) -> CheckResult:
        if self._remote("systemctl is-active docker").is_success:
            return CheckResult.passed("docker_active", "Docker service is running")
        return CheckResult.failed("docker_active", "Docker service is not running")

    def check_nginx_active(self) -> CheckResult:
        if self._remote("systemctl is-active nginx").is_success:
            return CheckResult.passed("nginx_active", "Nginx service is running")
        return CheckResult.failed("nginx_active", "Nginx service is not running")

    def check_container_running(self) -> CheckResult:
        ps = self._remote(RUNNING_NAMES_COMMAND)
        running = match_running_container(
            ps.stdout if ps.is_success else "",
            self.record.container_name,
            self.record.is_compose,
        )
        if running is None:
            # keep the full listing in the log for diagnosis
            self._remote("docker ps -a")
            raise EscalationError(
                "container_running",
                f"Container '{self.record.container_name}' is not running",
            )
        self.runtime_name = running
        return CheckResult.passed("container_running", f"Container '{running}' is running")

    def check_container_state(self) -> CheckResult:
        result = self._remote(f"docker inspect --format '{{{{.State.Status}}}}' {self._name}")
        state = result.stdout.strip() if result.is_success else "unknown"
        if state == "running":
            return CheckResult.passed("container_state", f"Container health status: {state}")
        return CheckResult.warned("container_state", f"Container status: {state}")

    def check_container_logs(self) -> CheckResult:
        result = self._remote(f"docker logs --tail={LOG_SCAN_LINES} {self._name} 2>&1")
        if result.is_failure:
            return CheckResult.warned("container_logs", "Could not read container logs")
        pattern = re.compile(LOG_ERROR_PATTERN, re.IGNORECASE)
        count = sum(1 for line in result.stdout.splitlines() if pattern.search(line))
        if count == 0:
            return CheckResult.passed("container_logs", "No critical errors found in container logs")
        return CheckResult.warned(
            "container_logs", f"Found {count} potential error messages in container logs"
        )

    # Network

    def check_container_port(self) -> CheckResult:
        port = int(self.record.app_port)
        result = self._remote(
            f"curl -f -s -o /dev/null -w '%{{http_code}}' http://localhost:{port} --max-time {LOCAL_PROBE_TIMEOUT}"
        )
        if result.is_success:
            return CheckResult.passed("container_port", f"Container responds on port {port}")
        return CheckResult.failed("container_port", f"Container not responding on port {port}")

    def check_proxy_local(self) -> CheckResult:
        result = self._remote(
            f"curl -s -o /dev/null -w '%{{http_code}}' http://localhost:{PROXY_PORT} --max-time {LOCAL_PROBE_TIMEOUT}"
        )
        code = result.stdout.strip() or "000"
        if code in HEALTHY_HTTP_CODES:
            return CheckResult.passed("proxy_local", f"Nginx proxy responding (HTTP {code})")
        return CheckResult.failed(
            "proxy_local", f"Nginx proxy not responding correctly (HTTP {code})"
        )

    def check_proxy_syntax(self) -> CheckResult:
        if self._remote("sudo nginx -t").is_success:
            return CheckResult.passed("proxy_syntax", "Nginx configuration syntax is valid")
        return CheckResult.failed("proxy_syntax", "Nginx configuration has syntax errors")

    def check_external_access(self) -> CheckResult:
        probe = self._external_probe()
        if probe.is_healthy:
            return CheckResult.passed(
                "external_access",
                f"External access successful (HTTP {probe.status_label}, {probe.latency_ms}ms)",
            )
        detail = f": {probe.error}" if probe.error else ""
        return CheckResult.failed(
            "external_access", f"External access failed (HTTP {probe.status_label}){detail}"
        )

    def check_response_time(self) -> CheckResult:
        probe = self._external_probe()
        if not probe.is_healthy or probe.latency_ms is None:
            return CheckResult.warned("response_time", "Response time not measured")
        if probe.latency_ms > LATENCY_WARN_MS:
            return CheckResult.warned(
                "response_time",
                f"Response time is slow: {probe.latency_ms}ms (threshold: {LATENCY_WARN_MS}ms)",
            )
        return CheckResult.passed(
            "response_time", f"Response time is acceptable: {probe.latency_ms}ms"
        )

    def check_proxy_signature(self) -> CheckResult:
        server = self._external_probe().header("Server") or ""
        if "nginx" in server.lower():
            return CheckResult.passed("proxy_signature", "Nginx signature found in headers")
        return CheckResult.warned("proxy_signature", "Nginx signature not found in headers")

    # Resources

    def _percentage(self, command: str) -> Optional[int]:
        result = self._remote(command)
        if result.is_failure:
            return None
        try:
            return int(result.stdout.strip().rstrip("%"))
        except ValueError:
            return None

    def check_disk_usage(self) -> CheckResult:
        usage = self._percentage(
            f"df -P {DOCKER_STORAGE_PATH} | tail -1 | awk '{{print $5}}'"
        )
        if usage is None:
            return CheckResult.warned("disk_usage", f"Could not read disk usage for {DOCKER_STORAGE_PATH}")
        if usage < DISK_WARN_PERCENT:
            return CheckResult.passed("disk_usage", f"Disk usage: {usage}% (healthy)")
        if usage < DISK_FAIL_PERCENT:
            return CheckResult.warned("disk_usage", f"Disk usage: {usage}% (warning threshold)")
        return CheckResult.failed("disk_usage", f"Disk usage: {usage}% (critical)")

    def check_memory_usage(self) -> CheckResult:
        usage = self._percentage(
            "free | awk '/^Mem:/ {printf \"%.0f\", $3/$2 * 100.0}'"
        )
        if usage is None:
            return CheckResult.warned("memory_usage", "Could not read memory usage")
        if usage < MEMORY_WARN_PERCENT:
            return CheckResult.passed("memory_usage", f"Memory usage: {usage}% (healthy)")
        return CheckResult.warned("memory_usage", f"Memory usage: {usage}% (high)")

    def capture_container_stats(self) -> None:
        result = self._remote(f"docker stats --no-stream {self._name}")
        if result.is_success:
            self.logger.log(f"Container stats for {self.runtime_name} logged")
        else:
            self.logger.log("Container stats unavailable", "WARNING")

    # Security

    def _header_check(self, check: str, header: str) -> CheckResult:
        if self._external_probe().header(header):
            return CheckResult.passed(check, f"{header} header present")
        return CheckResult.warned(check, f"{header} header missing")

    def check_frame_options(self) -> CheckResult:
        return self._header_check("x_frame_options", "X-Frame-Options")

    def check_content_type_options(self) -> CheckResult:
        return self._header_check("x_content_type_options", "X-Content-Type-Options")

    def check_container_user(self) -> CheckResult:
        result = self._remote(f"docker exec {self._name} whoami")
        user = result.stdout.strip() if result.is_success else ""
        if not user:
            return CheckResult.warned("container_user", "Could not determine container user")
        if user == "root":
            return CheckResult.warned("container_user", "Container is running as root (security concern)")
        return CheckResult.passed("container_user", f"Container running as non-root user: {user}")

    def check_key_permissions(self) -> CheckResult:
        try:
            mode = key_file_mode(self.record.key_path)
        except OSError as e:
            return CheckResult.warned("ssh_key_permissions", f"SSH key not readable: {e}")
        if is_secure_key_mode(mode):
            return CheckResult.passed("ssh_key_permissions", f"SSH key permissions are secure: {mode:o}")
        return CheckResult.warned(
            "ssh_key_permissions", f"SSH key permissions should be 600 or 400 (current: {mode:o})"
        )
