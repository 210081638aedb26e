"""
hostdeploy Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .results import (
    ValidationResult,
    SSHResult,
    CheckStatus,
    CheckResult,
    ResultLog,
    Report,
)
from .parameters import ParameterSet
from .deployment import (
    DeployStrategy,
    DeploymentFacts,
    DeploymentRecord,
    sanitize_container_name,
)
from .ssh import (
    SSHConfig,
    SSHConnection,
)

__all__ = [
    # Results
    "ValidationResult",
    "SSHResult",
    "CheckStatus",
    "CheckResult",
    "ResultLog",
    "Report",
    # Parameters
    "ParameterSet",
    # Deployment
    "DeployStrategy",
    "DeploymentFacts",
    "DeploymentRecord",
    "sanitize_container_name",
    # SSH
    "SSHConfig",
    "SSHConnection",
]
