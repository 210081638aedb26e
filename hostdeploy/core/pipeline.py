"""
Deploy pipeline

Ordered, fail-fast sequence of deployment steps. The first step that raises
a DeploymentError aborts the run with that step's exit code; nothing is
retried or rolled back.
"""

import shlex
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Tuple, Type

from hostdeploy.constants import (
    CONTAINER_SETTLE_DELAY,
    SSH_CONNECTION_TIMEOUT,
    TRANSFER_EXCLUDES,
)
from hostdeploy.core.containers import RUNNING_NAMES_COMMAND, match_running_container
from hostdeploy.exceptions import (
    ConnectivityError,
    DeploymentError,
    ProvisionError,
    ProxyConfigError,
    RolloutError,
    SourceError,
    SSHError,
    TransferError,
)
from hostdeploy.logger import DeployLogger
from hostdeploy.models.deployment import DeploymentFacts, DeploymentRecord
from hostdeploy.models.parameters import ParameterSet
from hostdeploy.models.results import SSHResult
from hostdeploy.services.proxy_service import (
    default_site_path,
    render_site,
    site_available_path,
    site_enabled_path,
)
from hostdeploy.services.source_service import SourceService
from hostdeploy.services.ssh_service import RemoteOptions, SSHService


@dataclass
class ProvisionTask:
    """A host component that is installed only when its check fails."""

    name: str
    check: str
    install: str


PROVISION_TASKS = [
    ProvisionTask(
        name="package index",
        check="find /var/lib/apt/lists -maxdepth 1 -name '*_Packages' -mmin -60 | grep -q .",
        install="sudo apt-get update -y",
    ),
    ProvisionTask(
        name="docker",
        check="command -v docker",
        install="""\
sudo apt-get install -y apt-transport-https ca-certificates curl gnupg lsb-release
curl -fsSL https://download.docker.com/linux/ubuntu/gpg | sudo gpg --batch --yes --dearmor -o /usr/share/keyrings/docker-archive-keyring.gpg
echo "deb [arch=$(dpkg --print-architecture) signed-by=/usr/share/keyrings/docker-archive-keyring.gpg] https://download.docker.com/linux/ubuntu $(lsb_release -cs) stable" | sudo tee /etc/apt/sources.list.d/docker.list > /dev/null
sudo apt-get update -y
sudo apt-get install -y docker-ce docker-ce-cli containerd.io""",
    ),
    ProvisionTask(
        name="docker-compose",
        check="command -v docker-compose",
        install="""\
sudo curl -fsSL "https://github.com/docker/compose/releases/latest/download/docker-compose-$(uname -s)-$(uname -m)" -o /usr/local/bin/docker-compose
sudo chmod +x /usr/local/bin/docker-compose""",
    ),
    ProvisionTask(
        name="nginx",
        check="command -v nginx",
        install="sudo apt-get install -y nginx",
    ),
]

SERVICE_RESTART_SCRIPT = """\
sudo systemctl enable docker
sudo systemctl restart docker
sudo systemctl enable nginx
sudo systemctl restart nginx"""

VERSION_SCRIPT = """\
docker --version
docker-compose --version
nginx -v 2>&1"""


class DeployPipeline:
    """Runs the deployment steps in order and aborts on the first failure."""

    def __init__(
        self,
        executor: SSHService,
        source: SourceService,
        logger: DeployLogger,
        record_path: Path,
        settle_delay: float = CONTAINER_SETTLE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.executor = executor
        self.source = source
        self.logger = logger
        self.record_path = Path(record_path)
        self.settle_delay = settle_delay
        self.sleep = sleep
        self.completed_steps: List[str] = []

    def steps(self) -> List[Tuple[str, Callable, Type[DeploymentError]]]:
        """Steps that run after source resolution, in order, with their error class."""
        return [
            ("Testing SSH connectivity", self.check_connectivity, ConnectivityError),
            ("Provisioning remote host", self.provision_host, ProvisionError),
            ("Transferring files", self.transfer_artifacts, TransferError),
            ("Rolling out container", self.roll_out_container, RolloutError),
            ("Configuring reverse proxy", self.configure_proxy, ProxyConfigError),
            ("Saving deployment information", self.persist_run_facts, DeploymentError),
        ]

    def run(self, params: ParameterSet) -> DeploymentFacts:
        """
        Execute every step; facts are only returned once all of them succeed.

        Raises:
            DeploymentError: From the first failing step
        """
        self.completed_steps = []
        facts = self._run_step("Resolving source", self.resolve_source, SourceError, params)
        for name, action, error_cls in self.steps():
            self._run_step(name, action, error_cls, params, facts)
        return facts

    def _run_step(
        self, name: str, action: Callable, error_cls: Type[DeploymentError], *args
    ):
        self.logger.step(name)
        try:
            outcome = action(*args)
        except DeploymentError as e:
            self.logger.log_error(e.message, context=e.context)
            raise
        except SSHError as e:
            # local ssh/rsync could not run: fatal for this step
            self.logger.log_error(e.message, context=e.context)
            raise error_cls(e.message, e.context) from e
        self.completed_steps.append(name)
        return outcome

    def _require(self, result: SSHResult, error_cls: type, message: str) -> SSHResult:
        if result.is_failure:
            detail = result.stderr.strip() or result.stdout.strip()
            context = f"Exit code: {result.returncode}"
            if detail:
                context += f", Output: {detail.splitlines()[-1]}"
            raise error_cls(message, context)
        return result

    # Step 1
    def resolve_source(self, params: ParameterSet) -> DeploymentFacts:
        facts = self.source.resolve(params)
        self.logger.success(f"Source ready at {facts.local_path}")
        return facts

    # Step 2
    def check_connectivity(self, params: ParameterSet, facts: DeploymentFacts) -> None:
        result = self.executor.run(
            "echo 'SSH connection successful'",
            RemoteOptions(timeout=SSH_CONNECTION_TIMEOUT, batch=True),
        )
        if result.timed_out:
            raise ConnectivityError(
                f"Timed out connecting to {params.host}",
                f"Timeout: {SSH_CONNECTION_TIMEOUT}s",
            )
        self._require(
            result,
            ConnectivityError,
            f"Failed to establish SSH connection to {params.host}",
        )
        self.logger.success("SSH connection successful")

    # Step 3
    def provision_host(self, params: ParameterSet, facts: DeploymentFacts) -> None:
        for task in PROVISION_TASKS:
            if self.executor.run(task.check).is_success:
                self.logger.success(f"{task.name} already present")
                continue
            self.logger.log(f"Installing {task.name}...")
            self._require(
                self.executor.run_script(task.install),
                ProvisionError,
                f"Failed to install {task.name}",
            )
            self.logger.success(f"Installed {task.name}")

        user = shlex.quote(params.ssh_user)
        self._require(
            self.executor.run_script(
                f"sudo usermod -aG docker {user}\nsudo chmod 666 /var/run/docker.sock"
            ),
            ProvisionError,
            "Failed to grant docker access",
        )
        self._require(
            self.executor.run_script(SERVICE_RESTART_SCRIPT),
            ProvisionError,
            "Failed to enable and start docker and nginx",
        )
        self._require(
            self.executor.run_script(VERSION_SCRIPT),
            ProvisionError,
            "Installed tooling did not report a version",
        )
        self.logger.success("Remote server preparation completed")

    # Step 4
    def transfer_artifacts(self, params: ParameterSet, facts: DeploymentFacts) -> None:
        remote_dir = shlex.quote(facts.remote_path)
        self._require(
            self.executor.run(f"mkdir -p {remote_dir}"),
            TransferError,
            f"Failed to create remote directory {facts.remote_path}",
        )
        self._require(
            self.executor.transfer(facts.local_path, facts.remote_path, TRANSFER_EXCLUDES),
            TransferError,
            "Failed to transfer files",
        )
        self.logger.success("Files transferred successfully")

    # Step 5
    def roll_out_container(self, params: ParameterSet, facts: DeploymentFacts) -> None:
        name = shlex.quote(facts.container_name)
        remote_dir = shlex.quote(facts.remote_path)

        # absence is not a failure
        self.executor.run(
            f"docker stop {name} 2>/dev/null; docker rm {name} 2>/dev/null; true"
        )

        if facts.is_compose:
            self.logger.log("Deploying with docker-compose...")
            self.executor.run(f"cd {remote_dir} && docker-compose down")
            self._require(
                self.executor.run(f"cd {remote_dir} && docker-compose up -d --build"),
                RolloutError,
                "docker-compose up failed",
            )
        else:
            self.logger.log("Deploying with Dockerfile...")
            self._require(
                self.executor.run(f"cd {remote_dir} && docker build -t {name} ."),
                RolloutError,
                "docker build failed",
            )
            port = int(params.app_port)
            self._require(
                self.executor.run(
                    f"docker run -d --name {name} -p {port}:{port} {name}"
                ),
                RolloutError,
                "docker run failed",
            )

        self.logger.log(f"Waiting {self.settle_delay}s for container to start...")
        self.sleep(self.settle_delay)

        ps = self.executor.run(RUNNING_NAMES_COMMAND)
        running = match_running_container(
            ps.stdout if ps.is_success else "", facts.container_name, facts.is_compose
        )
        if running is None:
            raise RolloutError(
                "Container failed to start. Check logs for details.",
                f"Container: {facts.container_name}",
            )
        self.logger.success(f"Container deployed successfully ({running})")

    # Step 6
    def configure_proxy(self, params: ParameterSet, facts: DeploymentFacts) -> None:
        conf = shlex.quote(site_available_path())
        enabled = shlex.quote(site_enabled_path())
        default = shlex.quote(default_site_path())

        self._require(
            self.executor.run(
                f"if [ -f {conf} ]; then sudo cp {conf} {conf}.backup.$(date +%Y%m%d_%H%M%S); fi"
            ),
            ProxyConfigError,
            "Failed to back up existing proxy config",
        )
        self._require(
            self.executor.run(
                f"sudo tee {conf} > /dev/null",
                RemoteOptions(input=render_site(params.app_port)),
            ),
            ProxyConfigError,
            "Failed to write proxy config",
        )
        self._require(
            self.executor.run(f"sudo ln -sf {conf} {enabled} && sudo rm -f {default}"),
            ProxyConfigError,
            "Failed to enable proxy site",
        )
        self._require(
            self.executor.run("sudo nginx -t"),
            ProxyConfigError,
            "Nginx configuration test failed, not reloading",
        )
        self._require(
            self.executor.run("sudo systemctl reload nginx"),
            ProxyConfigError,
            "Failed to reload nginx",
        )
        self.logger.success(f"Nginx forwarding port 80 to {params.app_port}")

    # Step 7
    def persist_run_facts(self, params: ParameterSet, facts: DeploymentFacts) -> None:
        record = DeploymentRecord.from_run(params, facts, str(self.logger.log_path))
        try:
            record.write(self.record_path)
        except OSError as e:
            self.logger.warning(f"Could not save deployment information: {e}")
            return
        self.logger.success(f"Deployment information saved to {self.record_path}")
