"""Bounded-concurrency dispatch of single-host deploy operations.

Scheduling:
- Tasks are queued in input order; `min(parallel, len(tasks))` workers each
  take the next task only when their previous one finished, so admission
  order is input order and at most `parallel` operations are in flight
- Completion order is unconstrained; results go onto one result queue
  drained by a single collector, the only shared mutable structure
- `run()` returns only after every task produced exactly one result

Failure isolation:
- Non-zero exit, TaskFailure, any other exception and timeout all become a
  FAILURE result; nothing propagates out of a worker
- The per-task timeout is optional; without it a stuck operation holds its
  slot until the process is terminated

Every task writes its own log file, so concurrent output never interleaves.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from wazuh_rollout.errors import TaskFailure
from wazuh_rollout.models import CommandResult, DeploymentResult, DeploymentStatus, HostTask
from wazuh_rollout.protocols import DeployOperation
from wazuh_rollout.utils.validation import safe_filename

logger = logging.getLogger(__name__)

StartCallback = Callable[[int, HostTask], None]
ResultCallback = Callable[[DeploymentResult], None]


@dataclass(frozen=True)
class _WorkItem:
    index: int
    task: HostTask
    log_path: Path


def assign_log_paths(
    tasks: Sequence[HostTask],
    log_dir: Path,
    run_timestamp: str,
    reserved: Iterable[str] = (),
) -> list[Path]:
    """Compute one unique log path per task.

    The first task with a given label gets `<label>_<timestamp>.log`; later
    tasks with the same label (or a reserved name) get an `_<index>` suffix.

    Args:
        tasks: Tasks in input order
        log_dir: Directory for the logs
        run_timestamp: Timestamp shared by every artifact of the run
        reserved: Names already taken by other artifacts

    Returns:
        Paths aligned with tasks
    """
    seen = set(reserved)
    paths: list[Path] = []
    for index, task in enumerate(tasks, start=1):
        name = safe_filename(task.label)
        if name in seen:
            paths.append(log_dir / f"{name}_{run_timestamp}_{index}.log")
        else:
            seen.add(name)
            paths.append(log_dir / f"{name}_{run_timestamp}.log")
    return paths


class Dispatcher:
    """Run a deploy operation for every task with bounded concurrency."""

    def __init__(
        self,
        operation: DeployOperation,
        parallel: int,
        log_dir: Path,
        run_timestamp: str,
        task_timeout: float | None = None,
        reserved_names: Iterable[str] = (),
    ) -> None:
        """Initialize dispatcher.

        Args:
            operation: Single-host deploy operation
            parallel: Maximum operations in flight (1 = sequential)
            log_dir: Directory for per-task logs
            run_timestamp: Timestamp shared by every artifact of the run
            task_timeout: Seconds before a task is cancelled, None for unbounded
            reserved_names: Log names used by other run artifacts

        Raises:
            ValueError: If parallel is not positive
        """
        if parallel < 1:
            raise ValueError(f"parallel must be > 0, got {parallel}")

        self.operation = operation
        self.parallel = parallel
        self.log_dir = Path(log_dir)
        self.run_timestamp = run_timestamp
        self.task_timeout = task_timeout if task_timeout else None
        self.reserved_names = frozenset(reserved_names)

        if self.task_timeout is None:
            logger.info("No per-task timeout configured; a stuck host holds its slot indefinitely")

    async def run(
        self,
        tasks: Sequence[HostTask],
        on_start: StartCallback | None = None,
        on_result: ResultCallback | None = None,
    ) -> list[DeploymentResult]:
        """Dispatch every task and wait for all of them.

        Args:
            tasks: Tasks in input order
            on_start: Called as each task is admitted, in input order
            on_result: Called as each task completes, in completion order

        Returns:
            One DeploymentResult per task, in completion order
        """
        if not tasks:
            return []

        self.log_dir.mkdir(parents=True, exist_ok=True)
        paths = assign_log_paths(tasks, self.log_dir, self.run_timestamp, self.reserved_names)

        work: asyncio.Queue[_WorkItem] = asyncio.Queue()
        for index, (task, path) in enumerate(zip(tasks, paths), start=1):
            work.put_nowait(_WorkItem(index=index, task=task, log_path=path))

        completed: asyncio.Queue[DeploymentResult] = asyncio.Queue()
        worker_count = min(self.parallel, len(tasks))
        logger.info(
            "Dispatching %d task(s) with %d worker(s) via %s",
            len(tasks),
            worker_count,
            self.operation.describe(),
        )

        workers = [
            asyncio.create_task(self._worker(work, completed, on_start), name=f"deploy-worker-{n}")
            for n in range(1, worker_count + 1)
        ]

        results: list[DeploymentResult] = []
        try:
            while len(results) < len(tasks):
                result = await completed.get()
                results.append(result)
                _notify(on_result, result)
        finally:
            for worker in workers:
                if not worker.done():
                    worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        return results

    async def _worker(
        self,
        work: "asyncio.Queue[_WorkItem]",
        completed: "asyncio.Queue[DeploymentResult]",
        on_start: StartCallback | None,
    ) -> None:
        """Take tasks from the queue until it is empty.

        Every admitted item puts exactly one result on the completed queue,
        even if the worker itself is cancelled mid-task.
        """
        while True:
            try:
                item = work.get_nowait()
            except asyncio.QueueEmpty:
                return

            _notify(on_start, item.index, item.task)
            result: DeploymentResult | None = None
            try:
                result = await self._execute(item)
            finally:
                if result is None:
                    result = self._result(item, None, "worker cancelled", 0.0)
                completed.put_nowait(result)

    async def _call(self, task: HostTask) -> CommandResult:
        if self.task_timeout is None:
            return await self.operation(task)
        return await asyncio.wait_for(self.operation(task), timeout=self.task_timeout)

    async def _execute(self, item: _WorkItem) -> DeploymentResult:
        """Run the operation for one task and turn the outcome into a result.

        The operation runs in its own task, so a CancelledError raised by
        the operation is a failed deployment rather than a dead worker.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        self._write_header(item)

        run = asyncio.create_task(self._call(item.task), name=f"deploy-{item.index}")
        try:
            await asyncio.wait({run})
        except asyncio.CancelledError:
            run.cancel()
            await asyncio.gather(run, return_exceptions=True)
            raise

        command: CommandResult | None = None
        error: str | None = None
        if run.cancelled():
            error = "operation cancelled"
        else:
            exc = run.exception()
            if exc is None:
                command = run.result()
            elif isinstance(exc, asyncio.TimeoutError):
                error = f"timed out after {self.task_timeout:g}s"
            elif isinstance(exc, TaskFailure):
                error = exc.reason
            else:
                logger.debug("Operation for %s raised", item.task.host, exc_info=exc)
                error = f"{type(exc).__name__}: {exc}"

        if command is not None and not command.ok:
            error = f"exit code {command.returncode}"

        duration = loop.time() - started
        result = self._result(item, command, error, duration)
        self._write_trailer(item, command, result.status, error, duration)

        if error is not None:
            logger.debug("Task %d (%s) failed: %s", item.index, item.task.host, error)
        return result

    @staticmethod
    def _result(
        item: _WorkItem,
        command: CommandResult | None,
        error: str | None,
        duration: float,
    ) -> DeploymentResult:
        succeeded = error is None and command is not None
        status = DeploymentStatus.SUCCESS if succeeded else DeploymentStatus.FAILURE
        return DeploymentResult(
            task=item.task,
            status=status,
            log_path=item.log_path,
            sequence_index=item.index,
            error=error,
            duration=duration,
        )

    def _write_header(self, item: _WorkItem) -> None:
        lines = [
            f"Host:    {item.task.host}",
            f"Agent:   {item.task.label}",
            f"Group:   {item.task.group}",
            f"Task:    {item.index}",
            f"Started: {datetime.now().isoformat(timespec='seconds')}",
            "",
        ]
        self._write(item.log_path, "\n".join(lines) + "\n", mode="w")

    def _write_trailer(
        self,
        item: _WorkItem,
        command: CommandResult | None,
        status: DeploymentStatus,
        error: str | None,
        duration: float,
    ) -> None:
        parts: list[str] = []
        if command is not None and command.combined:
            parts.append(command.combined.rstrip("\n") + "\n")
        parts.append("\n")
        if command is not None:
            parts.append(f"Exit code: {command.returncode}\n")
        if error is not None:
            parts.append(f"Error:     {error}\n")
        parts.append(f"Status:    {status.value}\n")
        parts.append(f"Duration:  {duration:.1f}s\n")
        self._write(item.log_path, "".join(parts), mode="a")

    @staticmethod
    def _write(path: Path, text: str, mode: str) -> None:
        """Write to a task log; a log write failure never fails the task."""
        try:
            with path.open(mode, encoding="utf-8") as fh:
                fh.write(text)
        except OSError as e:
            logger.error("Cannot write task log %s: %s", path, e)


def _notify(callback: Callable[..., None] | None, *args: Any) -> None:
    """Invoke a display callback; its errors are logged, never raised."""
    if callback is None:
        return
    try:
        callback(*args)
    except Exception:
        logger.exception("Progress callback %r failed", callback)
