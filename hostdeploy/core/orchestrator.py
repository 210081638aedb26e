"""
Orchestrator

Drives one run through COLLECTING_INPUT -> DEPLOYING -> VALIDATING ->
REPORTING -> DONE and turns the outcome into a process exit code. A failed
deployment step moves the run to ABORTED and validation is never entered.
"""

import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from rich.console import Console

from hostdeploy.constants import (
    CONTAINER_SETTLE_DELAY,
    EXIT_SUCCESS,
    EXIT_VALIDATION_FAILURE,
    EXIT_VALIDATION_NETWORK_FAILURE,
    EXIT_VALIDATION_SERVICE_FAILURE,
)
from hostdeploy.core.parameters import collect_parameters
from hostdeploy.core.pipeline import DeployPipeline
from hostdeploy.core.report import build_report, render_report, write_summary
from hostdeploy.core.validation import NETWORK, SERVICES, ValidationSuite
from hostdeploy.exceptions import DeploymentError, StateError
from hostdeploy.logger import DeployLogger
from hostdeploy.models.deployment import DeploymentRecord
from hostdeploy.models.results import CheckStatus, Report, ResultLog
from hostdeploy.services.http_probe import HttpProber
from hostdeploy.services.source_service import SourceService
from hostdeploy.services.ssh_service import SSHService


class RunState(Enum):
    """Lifecycle of a single run."""

    COLLECTING_INPUT = "collecting_input"
    DEPLOYING = "deploying"
    VALIDATING = "validating"
    REPORTING = "reporting"
    DONE = "done"
    ABORTED = "aborted"


# COLLECTING_INPUT -> VALIDATING is the validation-only path (existing record)
TRANSITIONS = {
    RunState.COLLECTING_INPUT: {RunState.DEPLOYING, RunState.VALIDATING},
    RunState.DEPLOYING: {RunState.VALIDATING, RunState.ABORTED},
    RunState.VALIDATING: {RunState.REPORTING},
    RunState.REPORTING: {RunState.DONE},
    RunState.DONE: set(),
    RunState.ABORTED: set(),
}


def validation_exit_code(results: ResultLog, report: Report) -> int:
    """Map a finished validation onto the documented exit codes."""
    if report.is_healthy:
        return EXIT_SUCCESS

    def group_failed(group: str) -> bool:
        return any(r.status is CheckStatus.FAIL for r in results.in_group(group))

    if report.escalated or group_failed(SERVICES):
        return EXIT_VALIDATION_SERVICE_FAILURE
    if group_failed(NETWORK):
        return EXIT_VALIDATION_NETWORK_FAILURE
    return EXIT_VALIDATION_FAILURE


class Orchestrator:
    """Runs deploy, validation and reporting strictly in sequence."""

    def __init__(
        self,
        work_dir: Path,
        log_dir: Path,
        record_path: Path,
        summary_path: Path,
        verbose: bool = False,
        settle_delay: float = CONTAINER_SETTLE_DELAY,
        console: Optional[Console] = None,
        executor_factory: Callable[..., SSHService] = SSHService,
        source_factory: Callable[..., SourceService] = SourceService,
        prober: Optional[HttpProber] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.work_dir = Path(work_dir)
        self.log_dir = Path(log_dir)
        self.record_path = Path(record_path)
        self.summary_path = Path(summary_path)
        self.verbose = verbose
        self.settle_delay = settle_delay
        self.console = console or Console()
        self.executor_factory = executor_factory
        self.source_factory = source_factory
        self.prober = prober
        self.sleep = sleep

        self.state = RunState.COLLECTING_INPUT
        self.report: Optional[Report] = None
        self.results: Optional[ResultLog] = None
        self.error: Optional[DeploymentError] = None
        self.exit_code: Optional[int] = None

    def transition(self, new_state: RunState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise StateError(
                f"Illegal transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    def run(self, raw_values: Dict[str, Any]) -> int:
        """
        Full run: validate parameters, deploy, validate, report.

        Raises:
            ParameterError: If the raw values are not a valid ParameterSet
        """
        with DeployLogger(
            "deploy", self.log_dir, verbose=self.verbose, target=raw_values.get("host")
        ) as logger:
            params = collect_parameters(raw_values, logger)

            self.transition(RunState.DEPLOYING)
            executor = self.executor_factory(params.connection, logger)
            pipeline = DeployPipeline(
                executor=executor,
                source=self.source_factory(self.work_dir, logger),
                logger=logger,
                record_path=self.record_path,
                settle_delay=self.settle_delay,
                sleep=self.sleep,
            )
            try:
                facts = pipeline.run(params)
            except DeploymentError as e:
                self.transition(RunState.ABORTED)
                self.error = e
                self.exit_code = e.exit_code
                logger.has_errors = True
                self.console.print(
                    f"\n[bold red]✗ Deployment aborted[/bold red] [dim](exit code {e.exit_code})[/dim]"
                )
                self.console.print(f"[dim]Logs saved to:[/dim] {logger.log_path}\n")
                return self.exit_code

            record = DeploymentRecord.from_run(params, facts, str(logger.log_path))
            self.console.print()
            self.console.print("[bold green]✓ DEPLOYMENT COMPLETED SUCCESSFULLY[/bold green]")
            self.console.print(
                f"[dim]Container:[/dim] {facts.container_name}  "
                f"[dim]Access your application at:[/dim] http://{params.host}\n"
            )

        return self.validate(record)

    def validate(self, record: DeploymentRecord) -> int:
        """Validation and reporting for a deployed record."""
        self.transition(RunState.VALIDATING)
        with DeployLogger(
            "validate", self.log_dir, verbose=self.verbose, target=record.host
        ) as logger:
            executor = self.executor_factory(record.connection, logger)
            suite = ValidationSuite(executor, record, logger, prober=self.prober)
            self.results = suite.run()
            validation_log = str(logger.log_path)

        self.transition(RunState.REPORTING)
        self.report = build_report(self.results, escalated=suite.escalated)
        try:
            write_summary(
                self.report,
                self.summary_path,
                record.host,
                record.container_name,
                validation_log,
            )
        except OSError as e:
            self.console.print(f"[yellow]⚠ Could not write summary: {e}[/yellow]")
        render_report(self.report, self.console)
        self.console.print(f"\n[dim]Validation log:[/dim] {validation_log}")
        self.console.print(f"[dim]JSON summary:[/dim] {self.summary_path}\n")

        self.transition(RunState.DONE)
        self.exit_code = validation_exit_code(self.results, self.report)
        return self.exit_code
