"""SSH service for executing commands on the target host."""

import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from hostdeploy.constants import TRANSFER_EXCLUDES
from hostdeploy.exceptions import SSHError
from hostdeploy.logger import DeployLogger
from hostdeploy.models.results import SSHResult
from hostdeploy.models.ssh import SSHConnection

TIMEOUT_RETURNCODE = 124


@dataclass
class RemoteOptions:
    """Options for a single remote call."""

    timeout: Optional[int] = None
    batch: bool = False
    input: Optional[str] = None


class SSHService:
    """
    Runs commands on one host over ssh and mirrors directories with rsync.

    Never raises for remote failures: non-zero exits and timeouts are
    returned as an SSHResult so the caller decides what is fatal. Only a
    broken local toolchain raises SSHError.
    """

    def __init__(self, connection: SSHConnection, logger: Optional[DeployLogger] = None):
        """
        Initialize SSH service.

        Args:
            connection: Target host and identity
            logger: Operation log that receives every command and its output
        """
        self.connection = connection
        self.logger = logger

    @property
    def host(self) -> str:
        return self.connection.host

    def run(self, command: str, options: Optional[RemoteOptions] = None) -> SSHResult:
        """
        Execute command on the remote host via SSH.

        Args:
            command: Shell command, already quoted by the caller
            options: Timeout, batch mode and stdin

        Returns:
            SSHResult with execution details
        """
        if options is None:
            options = RemoteOptions()

        ssh_cmd = self.connection.ssh_command_prefix(
            batch=options.batch,
            connect_timeout=options.timeout if options.batch else None,
        )
        ssh_cmd.append(command)
        return self._execute(ssh_cmd, command, options)

    def run_script(self, script: str, options: Optional[RemoteOptions] = None) -> SSHResult:
        """
        Execute a multi-line script with `bash -s`, script fed on stdin.

        Args:
            script: Script body; aborts on the first failing line
            options: Timeout and batch mode (input is replaced by the script)

        Returns:
            SSHResult with execution details
        """
        options = options or RemoteOptions()
        script_options = RemoteOptions(
            timeout=options.timeout,
            batch=options.batch,
            input=f"set -e\n{script}\n",
        )
        return self.run("bash -s", script_options)

    def transfer(
        self,
        local_dir: Path,
        remote_dir: str,
        excludes: Iterable[str] = TRANSFER_EXCLUDES,
    ) -> SSHResult:
        """
        Mirror a local directory tree to the remote host with rsync.

        Args:
            local_dir: Source directory (its contents are copied)
            remote_dir: Destination, relative to the remote home or absolute
            excludes: Path patterns to leave out

        Returns:
            SSHResult for the rsync process
        """
        rsync_cmd = ["rsync", "-az", "-e", self.connection.rsync_shell]
        for pattern in excludes:
            rsync_cmd.append(f"--exclude={pattern}")
        rsync_cmd.append(f"{Path(local_dir)}/")
        rsync_cmd.append(f"{self.connection.connection_string}:{remote_dir}/")

        description = f"rsync {local_dir} -> {remote_dir}"
        return self._execute(rsync_cmd, description, RemoteOptions())

    def _execute(
        self, argv: list[str], description: str, options: RemoteOptions
    ) -> SSHResult:
        if self.logger:
            self.logger.log_command(description)

        start_time = time.time()
        try:
            completed = subprocess.run(
                argv,
                input=options.input,
                capture_output=True,
                text=True,
                timeout=options.timeout,
            )
        except subprocess.TimeoutExpired:
            duration = time.time() - start_time
            if self.logger:
                self.logger.log(
                    f"Timed out after {options.timeout}s: {description}", "WARNING"
                )
            return SSHResult(
                returncode=TIMEOUT_RETURNCODE,
                stderr=f"timed out after {options.timeout}s",
                host=self.host,
                command=description,
                duration_seconds=duration,
                timed_out=True,
            )
        except OSError as e:
            raise SSHError(
                f"Could not run {argv[0]}: {e}",
                f"Host: {self.host}, Command: {description}",
            )

        result = SSHResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            host=self.host,
            command=description,
            duration_seconds=time.time() - start_time,
        )

        if self.logger:
            self.logger.log_output(result.stdout, "stdout")
            self.logger.log_output(result.stderr, "stderr")
            if result.is_failure:
                self.logger.log(
                    f"Exit code {result.returncode}: {description}", "WARNING"
                )

        return result
