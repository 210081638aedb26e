"""
hostdeploy Core

Parameter validation, the deploy pipeline, the validation suite, reporting
and the orchestrator that ties them together.
"""

from .orchestrator import Orchestrator, RunState, validation_exit_code
from .pipeline import DeployPipeline
from .validation import ValidationSuite
from .report import build_report

__all__ = [
    "Orchestrator",
    "RunState",
    "validation_exit_code",
    "DeployPipeline",
    "ValidationSuite",
    "build_report",
]
