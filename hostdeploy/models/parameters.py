"""
Deployment Parameter Models

The validated, immutable configuration for one deployment run.
"""

from dataclasses import dataclass

from hostdeploy.constants import DEFAULT_BRANCH
from hostdeploy.models.ssh import SSHConfig, SSHConnection


@dataclass(frozen=True)
class ParameterSet:
    """Validated parameters for a single run. Build via collect_parameters()."""

    repo_url: str
    token: str
    ssh_user: str
    host: str
    ssh_key_path: str
    app_port: int
    branch: str = DEFAULT_BRANCH

    @property
    def ssh_config(self) -> SSHConfig:
        return SSHConfig(key_path=self.ssh_key_path, user=self.ssh_user)

    @property
    def connection(self) -> SSHConnection:
        return SSHConnection(host=self.host, config=self.ssh_config)

    def __repr__(self) -> str:
        # never include the token
        return (
            f"ParameterSet(repo={self.repo_url}, branch={self.branch}, "
            f"target={self.ssh_user}@{self.host}, port={self.app_port})"
        )
