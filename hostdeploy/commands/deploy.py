"""hostdeploy - Deploy command"""

from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.prompt import Prompt

from hostdeploy.base import BaseCommand
from hostdeploy.constants import (
    CONTAINER_SETTLE_DELAY,
    DEFAULT_BRANCH,
    DEFAULT_LOG_DIR,
    DEFAULT_WORK_DIR,
    DEPLOYMENT_RECORD_FILE,
    VALIDATION_SUMMARY_FILE,
)
from hostdeploy.core.config_loader import load_config_file, merge_values
from hostdeploy.core.orchestrator import Orchestrator
from hostdeploy.core.parameters import FIELD_VALIDATORS
from hostdeploy.exceptions import ConfigurationError

# (field, prompt label, hidden input)
PROMPTS = [
    ("repo_url", "Enter Git Repository URL", False),
    ("token", "Enter Personal Access Token (PAT)", True),
    ("branch", "Enter branch name", False),
    ("ssh_user", "Enter SSH username", False),
    ("host", "Enter server IP address", False),
    ("ssh_key_path", "Enter SSH key path", False),
    ("app_port", "Enter application port (1024-65535)", False),
]


class DeployCommand(BaseCommand):
    """Deploy the repository to the host, then validate it."""

    def __init__(
        self,
        work_dir: Path,
        log_dir: Path,
        record_path: Path,
        summary_path: Path,
        settle_delay: float,
        interactive: bool = True,
        verbose: bool = False,
    ):
        super().__init__(verbose=verbose)
        self.work_dir = work_dir
        self.log_dir = log_dir
        self.record_path = record_path
        self.summary_path = summary_path
        self.settle_delay = settle_delay
        self.interactive = interactive

    def collect_input(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Prompt for every missing or invalid value; re-ask until valid."""
        collected = dict(values)
        for field, label, hidden in PROMPTS:
            validator = FIELD_VALIDATORS[field]
            current = collected.get(field)

            if field == "branch" and not current:
                if not self.interactive:
                    collected[field] = DEFAULT_BRANCH
                    continue
                current = Prompt.ask(label, default=DEFAULT_BRANCH, console=self.console)

            error = validator(current) if current not in (None, "") else "missing"
            while error:
                if not self.interactive:
                    raise ConfigurationError(
                        f"Missing or invalid value for {field}",
                        error if error != "missing" else "Pass it as an option or in --config",
                    )
                if error != "missing":
                    self.print_error(error)
                current = Prompt.ask(label, password=hidden, console=self.console)
                error = validator(current)

            collected[field] = current
        return collected

    def execute(self, values: Dict[str, Any], config_path: Optional[Path] = None) -> int:
        self.show_header(
            title="Deploy",
            subtitle="Automated deployment & validation",
        )

        file_values = load_config_file(config_path)
        raw = self.collect_input(merge_values(values, file_values))

        orchestrator = Orchestrator(
            work_dir=self.work_dir,
            log_dir=self.log_dir,
            record_path=self.record_path,
            summary_path=self.summary_path,
            verbose=self.verbose,
            settle_delay=self.settle_delay,
            console=self.console,
        )
        return orchestrator.run(raw)


@click.command()
@click.option("--repo-url", help="Git repository URL (http/https)")
@click.option("--token", envvar="HOSTDEPLOY_TOKEN", help="Personal access token")
@click.option("--branch", help=f"Branch to deploy (default: {DEFAULT_BRANCH})")
@click.option("--user", "ssh_user", envvar="HOSTDEPLOY_SSH_USER", help="SSH username")
@click.option("--host", envvar="HOSTDEPLOY_HOST", help="Server IP address or hostname")
@click.option("--key", "ssh_key_path", envvar="HOSTDEPLOY_SSH_KEY", help="SSH private key path")
@click.option("--port", "app_port", type=int, help="Application port (1024-65535)")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML file with deployment parameters",
)
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_WORK_DIR,
    show_default=True,
    help="Where the repository is cloned",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_LOG_DIR,
    show_default=True,
)
@click.option(
    "--record",
    "record_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEPLOYMENT_RECORD_FILE,
    show_default=True,
)
@click.option(
    "--summary",
    "summary_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=VALIDATION_SUMMARY_FILE,
    show_default=True,
)
@click.option(
    "--settle-delay",
    type=float,
    default=CONTAINER_SETTLE_DELAY,
    show_default=True,
    help="Seconds to wait before checking the container",
)
@click.option("--no-input", is_flag=True, help="Fail instead of prompting")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
def deploy(
    repo_url,
    token,
    branch,
    ssh_user,
    host,
    ssh_key_path,
    app_port,
    config_path,
    work_dir,
    log_dir,
    record_path,
    summary_path,
    settle_delay,
    no_input,
    verbose,
):
    """
    Deploy and validate an application

    \b
    Steps:
    - Clone or update the repository
    - Provision docker, docker-compose and nginx on the host
    - Transfer files and start the container
    - Configure nginx on port 80
    - Validate services, network, resources and security
    """
    cmd = DeployCommand(
        work_dir=work_dir,
        log_dir=log_dir,
        record_path=record_path,
        summary_path=summary_path,
        settle_delay=settle_delay,
        interactive=not no_input,
        verbose=verbose,
    )
    cmd.run(
        values={
            "repo_url": repo_url,
            "token": token,
            "branch": branch,
            "ssh_user": ssh_user,
            "host": host,
            "ssh_key_path": ssh_key_path,
            "app_port": app_port,
        },
        config_path=config_path,
    )
