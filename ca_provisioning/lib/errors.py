"""Error taxonomy for CA provisioning."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ExecutionReport


class ProvisioningError(Exception):
    """Base class for errors surfaced to provisioning callers."""


class ConfigurationError(ProvisioningError):
    """Invalid request fields or unsupported tool version.

    Raised before any step runs, so no partial state exists on disk.
    """


class StepExecutionError(ProvisioningError):
    """A step exited non-zero or timed out."""

    def __init__(self, report: ExecutionReport) -> None:
        self.report = report
        self.failure = report.failure
        if self.failure is None:
            super().__init__("step execution failed")
            return
        super().__init__(
            f"step {self.failure.identity} failed ({self.failure.describe()}): "
            f"{self.failure.command}"
        )


class PublishError(ProvisioningError):
    """Stable exposure of generated material failed after a successful run."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"could not publish {path}: {reason}")


class TaskGraphError(RuntimeError):
    """Malformed task graph. Indicates a programming error, not bad input."""
