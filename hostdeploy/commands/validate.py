"""hostdeploy - Validate command"""

from pathlib import Path

import click

from hostdeploy.base import BaseCommand
from hostdeploy.constants import (
    DEFAULT_LOG_DIR,
    DEFAULT_WORK_DIR,
    DEPLOYMENT_RECORD_FILE,
    VALIDATION_SUMMARY_FILE,
)
from hostdeploy.core.orchestrator import Orchestrator
from hostdeploy.models.deployment import DeploymentRecord


class ValidateCommand(BaseCommand):
    """Re-run the validation suite against an existing deployment."""

    def __init__(
        self,
        record_path: Path,
        log_dir: Path,
        summary_path: Path,
        verbose: bool = False,
    ):
        super().__init__(verbose=verbose)
        self.record_path = record_path
        self.log_dir = log_dir
        self.summary_path = summary_path

    def execute(self) -> int:
        record = DeploymentRecord.load(self.record_path)

        self.show_header(
            title="Validate",
            subtitle="Checking live deployment",
            details={
                "Host": record.host,
                "Container": record.container_name,
                "Type": record.strategy.value,
            },
        )

        orchestrator = Orchestrator(
            work_dir=Path(DEFAULT_WORK_DIR),
            log_dir=self.log_dir,
            record_path=self.record_path,
            summary_path=self.summary_path,
            verbose=self.verbose,
            console=self.console,
        )
        return orchestrator.validate(record)


@click.command()
@click.option(
    "--record",
    "record_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEPLOYMENT_RECORD_FILE,
    show_default=True,
    help="Deployment record written by deploy",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_LOG_DIR,
    show_default=True,
)
@click.option(
    "--summary",
    "summary_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=VALIDATION_SUMMARY_FILE,
    show_default=True,
)
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
def validate(record_path, log_dir, summary_path, verbose):
    """
    Validate an existing deployment

    \b
    Reads deployment.env and runs the service, network, resource and
    security checks again without redeploying.
    """
    cmd = ValidateCommand(
        record_path=record_path,
        log_dir=log_dir,
        summary_path=summary_path,
        verbose=verbose,
    )
    cmd.run()
