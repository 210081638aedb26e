"""
hostdeploy Exception Hierarchy

Clean exception hierarchy for consistent error handling across the CLI.
Deployment errors carry the process exit code of the stage that failed.
"""

from typing import Optional

from hostdeploy.constants import (
    EXIT_GENERAL_FAILURE,
    EXIT_CONNECTIVITY_FAILURE,
    EXIT_TRANSFER_FAILURE,
    EXIT_PROXY_CONFIG_FAILURE,
    EXIT_ROLLOUT_FAILURE,
    EXIT_PROVISION_FAILURE,
)


class HostDeployError(Exception):
    """Base exception for all hostdeploy errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class ConfigurationError(HostDeployError):
    """Raised when configuration is invalid or missing."""

    pass


class ParameterError(ConfigurationError):
    """Raised when deployment parameters fail validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid deployment parameters", "; ".join(errors))


class SSHError(HostDeployError):
    """Raised when the local ssh/rsync tooling cannot be invoked."""

    pass


class StateError(HostDeployError):
    """Raised on an illegal orchestrator state transition."""

    pass


class DeploymentError(HostDeployError):
    """Raised when a deployment step fails. Aborts the run."""

    exit_code = EXIT_GENERAL_FAILURE


class SourceError(DeploymentError):
    """Raised when the source repository cannot be resolved."""

    exit_code = EXIT_GENERAL_FAILURE


class ConnectivityError(DeploymentError):
    """Raised when the target host is unreachable over SSH."""

    exit_code = EXIT_CONNECTIVITY_FAILURE


class ProvisionError(DeploymentError):
    """Raised when host provisioning fails."""

    exit_code = EXIT_PROVISION_FAILURE


class TransferError(DeploymentError):
    """Raised when the artifact transfer fails."""

    exit_code = EXIT_TRANSFER_FAILURE


class RolloutError(DeploymentError):
    """Raised when the container does not come up."""

    exit_code = EXIT_ROLLOUT_FAILURE


class ProxyConfigError(DeploymentError):
    """Raised when the reverse proxy cannot be configured."""

    exit_code = EXIT_PROXY_CONFIG_FAILURE


class EscalationError(HostDeployError):
    """Raised inside validation when nothing downstream can be tested."""

    def __init__(self, check: str, message: str):
        self.check = check
        super().__init__(message, f"Check: {check}")
