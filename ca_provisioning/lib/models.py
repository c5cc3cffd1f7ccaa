"""Result models for CA provisioning."""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from .version_policy import ProtocolGeneration


class StepStatus(StrEnum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass
class CommandResult:
    """Outcome of one external command invocation."""

    returncode: int | None
    output: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.returncode == 0


@dataclass
class FailureDetail:
    """First failure of a run: which step, which command, and why."""

    identity: str
    command: str
    returncode: int | None
    timed_out: bool
    output: str

    def describe(self) -> str:
        if self.timed_out:
            return "timed out"
        return f"exit code {self.returncode}"


@dataclass
class StepResult:
    name: str
    identity: str
    status: StepStatus


@dataclass
class ExecutionReport:
    """Per-step statuses in execution order plus the first failure, if any."""

    results: list[StepResult] = field(default_factory=list)
    failure: FailureDetail | None = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    def status(self, name: str) -> StepStatus:
        """Return the status of the step with the given name.

        Raises:
            KeyError: If no step with that name was part of the run
        """
        for result in self.results:
            if result.name == name:
                return result.status
        raise KeyError(name)

    def statuses(self) -> dict[str, StepStatus]:
        return {result.name: result.status for result in self.results}


@dataclass
class CertificateSummary:
    """Metadata extracted from a PEM certificate on disk."""

    path: Path
    common_name: str
    serial_number: str
    not_before: str
    not_after: str


@dataclass
class ProvisioningResult:
    """Result from provisioning one CA instance.

    Contains the execution report and the stable paths operators rely on.
    """

    instance: str
    generation: ProtocolGeneration
    report: ExecutionReport
    ca_cert_path: Path
    server_key_path: Path
    crl_path: Path
    keys_alias: Path
    published: list[Path] = field(default_factory=list)
