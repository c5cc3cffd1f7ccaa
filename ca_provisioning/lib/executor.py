"""Run a task graph in dependency order with fail-fast semantics."""

import logging
import os
import signal
import subprocess

from .models import CommandResult, ExecutionReport, FailureDetail, StepResult, StepStatus
from .task_graph import StepSpec, TaskGraph

logger = logging.getLogger(__name__)

SHELL = "/bin/sh"


class CommandRunner:
    """Runs a step's command through the shell in its own process group."""

    def run(self, step: StepSpec) -> CommandResult:
        env = os.environ.copy()
        env.update(step.env)
        try:
            process = subprocess.Popen(
                [SHELL, "-c", step.command],
                cwd=step.cwd,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                start_new_session=True,
            )
        except OSError as e:
            return CommandResult(returncode=127, output=str(e))
        try:
            output, _ = process.communicate(timeout=step.timeout)
        except subprocess.TimeoutExpired:
            _kill_process_group(process)
            output, _ = process.communicate()
            return CommandResult(returncode=None, output=output or "", timed_out=True)
        return CommandResult(returncode=process.returncode, output=output or "")


def _kill_process_group(process: subprocess.Popen) -> None:
    """Kill the whole tree started for a step, not just the shell."""
    try:
        os.killpg(os.getpgid(process.pid), signal.SIGKILL)
    except ProcessLookupError:
        logger.info("Process group of pid %s already exited", process.pid)


class Executor:
    """Walks a TaskGraph strictly sequentially.

    Steps whose completion predicate holds are skipped. The first failure
    aborts every step not yet attempted, dependent or not.
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or CommandRunner()

    def run(self, graph: TaskGraph) -> ExecutionReport:
        order = graph.ordered()
        logger.info("Execution order for %s: %s", graph.instance, ", ".join(s.name for s in order))

        report = ExecutionReport()
        for index, step in enumerate(order):
            if step.is_complete():
                logger.info(
                    "Skipping %s, %s exists",
                    step.identity,
                    step.marker,
                    extra={"step": step.identity},
                )
                report.results.append(StepResult(step.name, step.identity, StepStatus.SKIPPED))
                continue

            logger.info(
                "Running %s: %s", step.identity, step.command, extra={"step": step.identity}
            )
            result = self.runner.run(step)
            if result.ok:
                logger.info("Step %s succeeded", step.identity, extra={"step": step.identity})
                report.results.append(StepResult(step.name, step.identity, StepStatus.SUCCEEDED))
                continue

            report.failure = FailureDetail(
                identity=step.identity,
                command=step.command,
                returncode=result.returncode,
                timed_out=result.timed_out,
                output=result.output,
            )
            logger.error(
                "Step %s failed (%s): %s",
                step.identity,
                report.failure.describe(),
                result.output,
                extra={"step": step.identity},
            )
            report.results.append(StepResult(step.name, step.identity, StepStatus.FAILED))
            dependents = graph.dependents(step.name)
            for remaining in order[index + 1 :]:
                reason = "depends on failed step" if remaining.name in dependents else "fail-fast"
                logger.info("Aborting %s (%s)", remaining.identity, reason)
                report.results.append(
                    StepResult(remaining.name, remaining.identity, StepStatus.ABORTED)
                )
            break

        return report
