"""
SSH Configuration Models

Dataclass models for SSH operations.
"""

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class SSHConfig:
    """SSH identity used to reach the target host."""

    key_path: str
    user: str

    @property
    def key_path_expanded(self) -> Path:
        """Get expanded key path (resolves ~)."""
        return Path(self.key_path).expanduser()

    def __repr__(self) -> str:
        return f"SSHConfig(user={self.user}, key={self.key_path})"


@dataclass(frozen=True)
class SSHConnection:
    """SSH connection details for a specific host."""

    host: str
    config: SSHConfig

    @property
    def connection_string(self) -> str:
        """Get SSH connection string (user@host)."""
        return f"{self.config.user}@{self.host}"

    def ssh_command_prefix(
        self, batch: bool = False, connect_timeout: Optional[int] = None
    ) -> list[str]:
        """Get SSH command prefix for subprocess."""
        prefix = [
            "ssh",
            "-i",
            str(self.config.key_path_expanded),
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "LogLevel=QUIET",
        ]
        if batch:
            prefix.extend(["-o", "BatchMode=yes"])
        if connect_timeout:
            prefix.extend(["-o", f"ConnectTimeout={connect_timeout}"])
        prefix.append(self.connection_string)
        return prefix

    @property
    def rsync_shell(self) -> str:
        """Remote shell string handed to rsync -e."""
        key = shlex.quote(str(self.config.key_path_expanded))
        return f"ssh -i {key} -o StrictHostKeyChecking=no"

    def __repr__(self) -> str:
        return f"SSHConnection(host={self.host}, user={self.config.user})"
