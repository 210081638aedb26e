"""
Deployment State Models

Dataclass models for facts derived during deployment and the persisted
deployment record.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict

from hostdeploy.exceptions import ConfigurationError
from hostdeploy.models.parameters import ParameterSet
from hostdeploy.models.ssh import SSHConfig, SSHConnection


class DeployStrategy(Enum):
    """How the container gets built and started on the host."""

    DOCKERFILE = "dockerfile"
    COMPOSE = "compose"


def sanitize_container_name(repo_name: str) -> str:
    """Lowercase and strip everything that is not alphanumeric or a hyphen."""
    return re.sub(r"[^a-z0-9-]", "", repo_name.lower())


@dataclass(frozen=True)
class DeploymentFacts:
    """Facts produced once by source resolution, read-only afterwards."""

    repo_name: str
    local_path: Path
    strategy: DeployStrategy
    remote_path: str
    container_name: str

    @property
    def is_compose(self) -> bool:
        return self.strategy is DeployStrategy.COMPOSE

    def __repr__(self) -> str:
        return f"DeploymentFacts(repo={self.repo_name}, strategy={self.strategy.value}, container={self.container_name})"


@dataclass(frozen=True)
class DeploymentRecord:
    """
    Flat key=value record of a finished deployment.

    Written at the end of the deploy phase and read back by a standalone
    validation run. remote_path is relative to the remote user's home.
    """

    host: str
    user: str
    key_path: str
    app_port: int
    container_name: str
    repo_name: str
    strategy: DeployStrategy
    log_file: str
    remote_path: str

    KEYS = (
        "SERVER_IP",
        "SERVER_USER",
        "SSH_KEY_PATH",
        "APP_PORT",
        "CONTAINER_NAME",
        "REPO_NAME",
        "DEPLOY_TYPE",
        "LOG_FILE",
        "DEPLOYMENT_PATH",
    )

    @classmethod
    def from_run(
        cls, params: ParameterSet, facts: DeploymentFacts, log_file: str
    ) -> "DeploymentRecord":
        return cls(
            host=params.host,
            user=params.ssh_user,
            key_path=params.ssh_key_path,
            app_port=params.app_port,
            container_name=facts.container_name,
            repo_name=facts.repo_name,
            strategy=facts.strategy,
            log_file=log_file,
            remote_path=facts.remote_path,
        )

    @property
    def connection(self) -> SSHConnection:
        return SSHConnection(
            host=self.host, config=SSHConfig(key_path=self.key_path, user=self.user)
        )

    @property
    def is_compose(self) -> bool:
        return self.strategy is DeployStrategy.COMPOSE

    def to_dict(self) -> Dict[str, str]:
        return {
            "SERVER_IP": self.host,
            "SERVER_USER": self.user,
            "SSH_KEY_PATH": self.key_path,
            "APP_PORT": str(self.app_port),
            "CONTAINER_NAME": self.container_name,
            "REPO_NAME": self.repo_name,
            "DEPLOY_TYPE": self.strategy.value,
            "LOG_FILE": self.log_file,
            "DEPLOYMENT_PATH": f"~/{self.remote_path}",
        }

    def write(self, path: Path) -> None:
        """Write the record as KEY=value lines."""
        lines = [
            "# Deployment Configuration",
            f"# Generated: {datetime.now().isoformat()}",
        ]
        lines.extend(f"{key}={value}" for key, value in self.to_dict().items())
        Path(path).write_text("\n".join(lines) + "\n")

    @classmethod
    def load(cls, path: Path) -> "DeploymentRecord":
        """
        Load a record written by write().

        Raises:
            ConfigurationError: If the file is missing, incomplete or malformed
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(
                f"Deployment record not found: {path}",
                "Run: hostdeploy deploy",
            )

        values: Dict[str, str] = {}
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            values[key.strip()] = value.strip()

        missing = [key for key in cls.KEYS if key not in values]
        if missing:
            raise ConfigurationError(
                f"Deployment record is incomplete: {path}",
                f"Missing keys: {', '.join(missing)}",
            )

        try:
            port = int(values["APP_PORT"])
            strategy = DeployStrategy(values["DEPLOY_TYPE"])
        except ValueError as e:
            raise ConfigurationError(f"Deployment record is malformed: {path}", str(e))

        remote_path = values["DEPLOYMENT_PATH"]
        if remote_path.startswith("~/"):
            remote_path = remote_path[2:]

        return cls(
            host=values["SERVER_IP"],
            user=values["SERVER_USER"],
            key_path=values["SSH_KEY_PATH"],
            app_port=port,
            container_name=values["CONTAINER_NAME"],
            repo_name=values["REPO_NAME"],
            strategy=strategy,
            log_file=values["LOG_FILE"],
            remote_path=remote_path,
        )
