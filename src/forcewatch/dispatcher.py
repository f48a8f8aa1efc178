"""Deploy dispatch: one external deploy command per artifact type."""

import asyncio
import logging
import shlex
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from forcewatch.models import ArtifactGroup, ArtifactType, DeployResult
from forcewatch.notifier import NoOpNotifier, Notifier
from forcewatch.progress import ProgressBoard, Spinner

logger = logging.getLogger(__name__)

CommandRunner = Callable[[list[str]], Awaitable[tuple[int, str, str]]]


async def run_deploy_command(argv: list[str]) -> tuple[int, str, str]:
    """Run ``argv`` to completion and capture its output.

    Returns:
        Tuple of (returncode, stdout, stderr)

    Raises:
        OSError: If the executable cannot be started
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    return (
        proc.returncode,
        stdout.decode(errors="replace"),
        stderr.decode(errors="replace"),
    )


@dataclass
class DeployTask:
    """One deploy invocation for one artifact type."""

    artifact_type: ArtifactType
    names: list[str]
    command: list[str]
    spinner: Spinner | None = field(default=None, repr=False)

    @property
    def label(self) -> str:
        return f"Deploying {self.artifact_type.metadata_type}: {', '.join(self.names)}"


class DeployDispatcher:
    """Starts deploy commands for classified artifact groups.

    Each non-empty type in a group becomes its own asyncio task; tasks never
    wait on or cancel each other, and a failed deploy is reported and dropped.
    """

    def __init__(
        self,
        deploy_tool: str = "force",
        notifier: Notifier | None = None,
        progress: ProgressBoard | None = None,
        runner: CommandRunner | None = None,
    ):
        """Initialize dispatcher.

        Args:
            deploy_tool: Deploy executable, split shell-style
            notifier: Operator notifications (defaults to NoOpNotifier)
            progress: Spinner board; spinners are skipped when None
            runner: Coroutine running an argv, for embedding and tests
        """
        self.deploy_tool = shlex.split(deploy_tool)
        self.notifier = notifier or NoOpNotifier()
        self.progress = progress
        self.runner = runner or run_deploy_command
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def build_command(self, artifact_type: ArtifactType, names: list[str]) -> list[str]:
        return [*self.deploy_tool, "push", "-t", artifact_type.metadata_type, "-n", ",".join(names)]

    def dispatch(self, group: ArtifactGroup) -> list[asyncio.Task]:
        """Start one deploy per non-empty artifact type in ``group``.

        Must be called from a running event loop. Spinners are shown before
        this returns.

        Returns:
            The started tasks, each resolving to a DeployResult
        """
        started = []
        for artifact_type, names in group.non_empty():
            task = DeployTask(
                artifact_type=artifact_type,
                names=list(names),
                command=self.build_command(artifact_type, names),
            )
            if self.progress is not None:
                task.spinner = self.progress.start(task.label)
            logger.info(f"Dispatching: {shlex.join(task.command)}")

            aio_task = asyncio.create_task(self.run(task))
            self._tasks.add(aio_task)
            aio_task.add_done_callback(self._on_task_done)
            started.append(aio_task)
        return started

    async def run(self, task: DeployTask) -> DeployResult:
        """Run a deploy task to completion and report it."""
        result = DeployResult(artifact_type=task.artifact_type, names=task.names)
        try:
            result.returncode, result.stdout, result.stderr = await self.runner(task.command)
            if result.returncode != 0:
                result.error = f"Command failed: {shlex.join(task.command)} (exit code {result.returncode})"
        except OSError as e:
            result.error = f"Command failed: {shlex.join(task.command)}: {e}"
        finally:
            if task.spinner is not None:
                task.spinner.stop()

        self.report(result)
        return result

    def report(self, result: DeployResult) -> None:
        if not result.success:
            logger.error(f"Deploy of {result.artifact_type.metadata_type} failed: {result.error}")
            self.notifier.error(f"exec error: {result.error}")
            self.notifier.error(f"stderr: {result.stderr}")
            return
        logger.debug(f"Deploy of {result.artifact_type.metadata_type} succeeded: {', '.join(result.names)}")
        self.notifier.output(result.stdout)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Deploy task crashed: {task.exception()!r}")

    async def wait_idle(self) -> list[DeployResult]:
        """Wait for every in-flight deploy, including ones started meanwhile."""
        results: list[DeployResult] = []
        while self._tasks:
            done = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            results.extend(r for r in done if isinstance(r, DeployResult))
        return results
