"""
End-to-end tests for the orchestrator.

A whole run goes through parameter collection, the deploy pipeline,
validation and reporting, with the remote host replaced by FakeExecutor
and the public probe by FakeProber.
"""

import json
import os
import stat
from dataclasses import replace

import pytest
from rich.console import Console

from hostdeploy.constants import (
    EXIT_ROLLOUT_FAILURE,
    EXIT_SUCCESS,
    EXIT_TRANSFER_FAILURE,
    EXIT_VALIDATION_FAILURE,
    EXIT_VALIDATION_NETWORK_FAILURE,
    EXIT_VALIDATION_SERVICE_FAILURE,
)
from hostdeploy.core.orchestrator import Orchestrator, RunState, validation_exit_code
from hostdeploy.core.report import build_report
from hostdeploy.core.validation import NETWORK, RESOURCES, SECURITY, SERVICES
from hostdeploy.exceptions import ParameterError, SSHError, StateError, TransferError
from hostdeploy.models.deployment import DeploymentRecord
from hostdeploy.models.results import CheckResult, CheckStatus, ResultLog

from tests.conftest import FakeSource


@pytest.fixture
def make_orchestrator(tmp_path, facts, prober):
    """Factory wiring an Orchestrator to fakes."""

    def _make(executor, source=None):
        return Orchestrator(
            work_dir=tmp_path,
            log_dir=tmp_path / "logs",
            record_path=tmp_path / "deployment.env",
            summary_path=tmp_path / "validation_summary.json",
            settle_delay=0,
            console=Console(record=True, width=120),
            executor_factory=lambda connection, logger: executor,
            source_factory=lambda work_dir, logger: source or FakeSource(facts),
            prober=prober,
            sleep=lambda seconds: None,
        )

    return _make


def log_of(*results):
    log = ResultLog()
    for group, result in results:
        log.append(replace(result, group=group))
    return log


class TestFullRun:
    """Deploy followed by validation"""

    def test_fresh_host_is_provisioned_deployed_and_validated(
        self, make_orchestrator, healthy_executor, raw_values, tmp_path
    ):
        healthy_executor.on("command -v", returncode=1)
        orchestrator = make_orchestrator(healthy_executor)

        code = orchestrator.run(raw_values)

        assert code == EXIT_SUCCESS
        assert orchestrator.state is RunState.DONE
        assert healthy_executor.ran("docker-ce")
        assert healthy_executor.ran("apt-get install -y nginx")
        assert orchestrator.report.failed == 0
        assert orchestrator.report.total == 17

        record = DeploymentRecord.load(tmp_path / "deployment.env")
        assert record.app_port == 8080

        summary = json.loads((tmp_path / "validation_summary.json").read_text())
        assert summary["results"]["verdict"] == "PASS"
        assert summary["container"] == "demo-app"

    def test_rollout_failure_aborts_without_validation(
        self, make_orchestrator, executor, raw_values, prober, tmp_path
    ):
        executor.on("docker ps --format", stdout="")
        orchestrator = make_orchestrator(executor)

        code = orchestrator.run(raw_values)

        assert code == EXIT_ROLLOUT_FAILURE
        assert orchestrator.state is RunState.ABORTED
        assert orchestrator.report is None
        assert prober.calls == 0
        assert not executor.ran("systemctl is-active")
        assert not (tmp_path / "validation_summary.json").exists()

    def test_missing_rsync_aborts_with_transfer_code(
        self, make_orchestrator, healthy_executor, raw_values, prober
    ):
        def no_rsync(local_dir, remote_dir, excludes=()):
            raise SSHError("Could not run rsync: No such file or directory")

        healthy_executor.transfer = no_rsync
        orchestrator = make_orchestrator(healthy_executor)

        code = orchestrator.run(raw_values)

        assert code == EXIT_TRANSFER_FAILURE
        assert orchestrator.state is RunState.ABORTED
        assert isinstance(orchestrator.error, TransferError)
        assert prober.calls == 0

    def test_loose_key_is_corrected_and_passes_security_check(
        self, make_orchestrator, healthy_executor, raw_values, key_file
    ):
        os.chmod(key_file, 0o644)
        orchestrator = make_orchestrator(healthy_executor)

        assert orchestrator.run(raw_values) == EXIT_SUCCESS

        assert stat.S_IMODE(os.stat(key_file).st_mode) == 0o600
        key_check = [r for r in orchestrator.results if r.check == "ssh_key_permissions"][0]
        assert key_check.status is CheckStatus.PASS

    def test_invalid_parameters_never_reach_the_host(self, make_orchestrator, executor, raw_values):
        raw_values["app_port"] = 22
        orchestrator = make_orchestrator(executor)

        with pytest.raises(ParameterError):
            orchestrator.run(raw_values)

        assert orchestrator.state is RunState.COLLECTING_INPUT
        assert executor.calls == []

    def test_failed_validation_reports_services_code(
        self, make_orchestrator, healthy_executor, raw_values
    ):
        healthy_executor.on("systemctl is-active docker", returncode=3)
        orchestrator = make_orchestrator(healthy_executor)

        assert orchestrator.run(raw_values) == EXIT_VALIDATION_SERVICE_FAILURE
        assert orchestrator.state is RunState.DONE
        assert "VALIDATION FAILED" in orchestrator.console.export_text()


class TestValidateOnly:
    """Validation against an existing record"""

    def test_validate_goes_straight_to_validation(self, make_orchestrator, healthy_executor, record):
        orchestrator = make_orchestrator(healthy_executor)

        assert orchestrator.validate(record) == EXIT_SUCCESS
        assert orchestrator.state is RunState.DONE
        assert not healthy_executor.ran("docker build")


class TestStateMachine:
    """Transitions"""

    def test_illegal_transition_raises(self, make_orchestrator, executor):
        orchestrator = make_orchestrator(executor)

        with pytest.raises(StateError):
            orchestrator.transition(RunState.DONE)

    def test_aborted_is_terminal(self, make_orchestrator, executor):
        orchestrator = make_orchestrator(executor)
        orchestrator.transition(RunState.DEPLOYING)
        orchestrator.transition(RunState.ABORTED)

        with pytest.raises(StateError):
            orchestrator.transition(RunState.VALIDATING)


class TestValidationExitCode:
    """Exit code selection"""

    def test_healthy_is_zero(self):
        results = log_of((SERVICES, CheckResult.passed("docker_active", "ok")))

        assert validation_exit_code(results, build_report(results)) == EXIT_SUCCESS

    def test_warnings_only_is_zero(self):
        results = log_of((RESOURCES, CheckResult.warned("memory_usage", "high")))

        assert validation_exit_code(results, build_report(results)) == EXIT_SUCCESS

    def test_service_failure_wins_over_network(self):
        results = log_of(
            (SERVICES, CheckResult.failed("nginx_active", "down")),
            (NETWORK, CheckResult.failed("proxy_local", "502")),
        )

        assert validation_exit_code(results, build_report(results)) == EXIT_VALIDATION_SERVICE_FAILURE

    def test_network_failure(self):
        results = log_of(
            (SERVICES, CheckResult.passed("docker_active", "ok")),
            (NETWORK, CheckResult.failed("external_access", "000")),
        )

        assert validation_exit_code(results, build_report(results)) == EXIT_VALIDATION_NETWORK_FAILURE

    def test_other_failure(self):
        results = log_of(
            (RESOURCES, CheckResult.failed("disk_usage", "95%")),
            (SECURITY, CheckResult.passed("container_user", "node")),
        )

        assert validation_exit_code(results, build_report(results)) == EXIT_VALIDATION_FAILURE

    def test_escalation_is_services_code(self):
        results = log_of((SERVICES, CheckResult.failed("container_running", "absent")))

        report = build_report(results, escalated=True)
        assert validation_exit_code(results, report) == EXIT_VALIDATION_SERVICE_FAILURE
