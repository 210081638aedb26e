"""
Result Models

Dataclass models for remote command outputs, validation checks and reports.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List
from enum import Enum


@dataclass
class ValidationResult:
    """Result of a parameter validation pass."""

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if validation has errors."""
        return len(self.errors) > 0

    def add_error(self, error: str) -> None:
        """Add an error to the validation result."""
        self.errors.append(error)
        self.is_valid = False

    def __repr__(self) -> str:
        return f"ValidationResult(valid={self.is_valid}, errors={len(self.errors)})"


@dataclass
class SSHResult:
    """Result of an SSH command execution."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    host: str = ""
    command: str = ""
    duration_seconds: float = 0.0
    timed_out: bool = False

    @property
    def is_success(self) -> bool:
        """Check if SSH command succeeded."""
        return self.returncode == 0 and not self.timed_out

    @property
    def is_failure(self) -> bool:
        """Check if SSH command failed."""
        return not self.is_success

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def __repr__(self) -> str:
        return f"SSHResult(host={self.host}, returncode={self.returncode}, duration={self.duration_seconds:.2f}s)"


class CheckStatus(Enum):
    """Outcome of a single validation check."""

    PASS = "PASS"
    FAIL = "FAIL"
    WARN = "WARN"


@dataclass(frozen=True)
class CheckResult:
    """One scored validation outcome."""

    status: CheckStatus
    message: str
    check: str
    group: str = ""

    @classmethod
    def passed(cls, check: str, message: str) -> "CheckResult":
        return cls(CheckStatus.PASS, message, check)

    @classmethod
    def failed(cls, check: str, message: str) -> "CheckResult":
        return cls(CheckStatus.FAIL, message, check)

    @classmethod
    def warned(cls, check: str, message: str) -> "CheckResult":
        return cls(CheckStatus.WARN, message, check)


class ResultLog:
    """Append-only, ordered sequence of check results."""

    def __init__(self):
        self._results: List[CheckResult] = []

    def append(self, result: CheckResult) -> None:
        self._results.append(result)

    def __iter__(self) -> Iterator[CheckResult]:
        return iter(tuple(self._results))

    def __len__(self) -> int:
        return len(self._results)

    def in_group(self, group: str) -> List[CheckResult]:
        """Results recorded for one check group."""
        return [r for r in self._results if r.group == group]

    def __repr__(self) -> str:
        return f"ResultLog(results={len(self._results)})"


@dataclass(frozen=True)
class Report:
    """Aggregate view of a validation run."""

    total: int
    passed: int
    failed: int
    warnings: int
    success_rate: float
    escalated: bool = False

    @property
    def is_healthy(self) -> bool:
        """Healthy iff nothing failed. Warnings never count."""
        return self.failed == 0

    @property
    def verdict(self) -> str:
        return "PASS" if self.is_healthy else "FAIL"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_tests": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "warnings": self.warnings,
            "success_rate": self.success_rate,
            "verdict": self.verdict,
            "escalated": self.escalated,
        }

    def __repr__(self) -> str:
        return f"Report(verdict={self.verdict}, total={self.total}, failed={self.failed})"
