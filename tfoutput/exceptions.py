"""Plugin exceptions."""

from typing import TYPE_CHECKING, List, Optional
from dataclasses import dataclass

if TYPE_CHECKING:
    from tfoutput.exec.step_executor import StepResult


@dataclass
class ValidationError:
    """Single configuration error."""
    message: str
    path: str = ""
    exit_code: int = 2


class TfOutputError(Exception):
    """Base class for fatal run errors."""

    exit_code = 1


class ConfigValidationError(TfOutputError):
    """Raised when configuration validation fails.

    The loader collects every problem before raising so that the CLI can
    report them together and map them to the validation exit code.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        self.exit_code = 2

        messages = []
        for error in errors:
            if error.path:
                messages.append(f"Validation error at {error.path}: {error.message}")
            else:
                messages.append(f"Validation error: {error.message}")

        super().__init__("\n".join(messages))


class CredentialError(TfOutputError):
    """Raised when role credentials cannot be obtained."""


class InstallError(TfOutputError):
    """Raised when the pinned tool version cannot be installed."""


class PersistenceError(TfOutputError):
    """Raised when a file the run depends on cannot be written."""


class StepExecutionError(TfOutputError):
    """Raised when a sequenced step exits non-zero or fails to spawn."""

    def __init__(self, result: "StepResult", message: Optional[str] = None):
        self.result = result
        super().__init__(message or f"Step '{result.step_name}' failed: {result.describe_failure()}")


class OutputCaptureError(StepExecutionError):
    """Raised when the output query step cannot be captured."""
