"""Step descriptions and the per-instance task graph."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .cert_utils import is_certificate_current
from .errors import TaskGraphError


class CompletionPredicate(Protocol):
    """Decides whether a step's output already exists."""

    marker: Path

    def is_complete(self) -> bool: ...


@dataclass(frozen=True)
class MarkerExists:
    """Step is complete when its marker path exists."""

    marker: Path

    def is_complete(self) -> bool:
        return self.marker.exists()


@dataclass(frozen=True)
class CertificateValid:
    """Step is complete when its marker is a certificate inside its validity window."""

    marker: Path

    def is_complete(self) -> bool:
        return is_certificate_current(self.marker)


@dataclass(frozen=True)
class MarkerNewerThan:
    """Step is complete when its marker exists and is not older than reference.

    A missing reference does not invalidate the marker.
    """

    marker: Path
    reference: Path

    def is_complete(self) -> bool:
        if not self.marker.exists():
            return False
        if not self.reference.exists():
            return True
        return self.marker.stat().st_mtime >= self.reference.stat().st_mtime


@dataclass(frozen=True)
class StepSpec:
    """One idempotent external-command invocation.

    Attributes:
        name: Step name, unique within an instance's graph
        instance: CA instance the step belongs to
        command: Shell command line run through /bin/sh
        cwd: Working directory for the command
        completion: Predicate that, when true, makes the step a no-op
        requires: Names of steps that must finish first
        env: Variables layered over the ambient environment
        timeout: Seconds before the process tree is killed, None for no limit
    """

    name: str
    instance: str
    command: str
    cwd: Path
    completion: CompletionPredicate
    requires: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    timeout: float | None = None

    @property
    def identity(self) -> str:
        return f"{self.instance}:{self.name}"

    @property
    def marker(self) -> Path:
        return self.completion.marker

    def is_complete(self) -> bool:
        return self.completion.is_complete()


class TaskGraph:
    """Steps of one instance keyed by name, with explicit prerequisite edges.

    Declaration order is kept and used as the tie-break when ordering.
    """

    def __init__(self, instance: str) -> None:
        self.instance = instance
        self._steps: dict[str, StepSpec] = {}

    def add(self, step: StepSpec) -> StepSpec:
        """Declare a step. Edges are checked by validate() once the graph is complete.

        Raises:
            TaskGraphError: On duplicate names or a step from another instance
        """
        if step.instance != self.instance:
            raise TaskGraphError(f"step {step.identity} does not belong to {self.instance}")
        if step.name in self._steps:
            raise TaskGraphError(f"duplicate step: {step.identity}")
        self._steps[step.name] = step
        return step

    def __contains__(self, name: object) -> bool:
        return name in self._steps

    def __getitem__(self, name: str) -> StepSpec:
        return self._steps[name]

    def __iter__(self) -> Iterator[StepSpec]:
        return iter(self._steps.values())

    def __len__(self) -> int:
        return len(self._steps)

    def names(self) -> list[str]:
        return list(self._steps)

    def dependents(self, name: str) -> set[str]:
        """Return every step that transitively requires the named step."""
        found: set[str] = set()
        frontier = [name]
        while frontier:
            current = frontier.pop()
            for step in self._steps.values():
                if current in step.requires and step.name not in found:
                    found.add(step.name)
                    frontier.append(step.name)
        return found

    def ordered(self) -> list[StepSpec]:
        """Topologically sort steps, preferring declaration order among ready steps.

        Raises:
            TaskGraphError: If the graph contains a cycle or a dangling edge
        """
        pending = list(self._steps.values())
        done: set[str] = set()
        order: list[StepSpec] = []
        while pending:
            for index, step in enumerate(pending):
                missing = [name for name in step.requires if name not in self._steps]
                if missing:
                    raise TaskGraphError(f"step {step.identity} requires unknown steps: {missing}")
                if all(name in done for name in step.requires):
                    break
            else:
                cycle = ", ".join(step.name for step in pending)
                raise TaskGraphError(f"cycle detected among steps: {cycle}")
            pending.pop(index)
            done.add(step.name)
            order.append(step)
        return order

    def validate(self) -> None:
        """Raise TaskGraphError unless every edge resolves and the graph is acyclic."""
        self.ordered()
