"""Tests for the bounded-concurrency dispatcher."""

import asyncio
from pathlib import Path

import pytest

from wazuh_rollout.errors import TaskFailure
from wazuh_rollout.models import CommandResult, DeploymentResult, HostTask
from wazuh_rollout.services.dispatcher import Dispatcher, assign_log_paths

TIMESTAMP = "20240101_120000"


class StubOperation:
    """Deploy operation driven by per-host behaviour.

    behaviour maps a host to an exit code or an exception to raise;
    delays maps a host to seconds spent "deploying".
    """

    def __init__(
        self,
        behaviour: dict[str, int | BaseException] | None = None,
        delays: dict[str, float] | None = None,
        default_delay: float = 0.01,
    ) -> None:
        self.behaviour = behaviour or {}
        self.delays = delays or {}
        self.default_delay = default_delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.started: list[str] = []

    def describe(self) -> str:
        return "stub"

    async def __call__(self, task: HostTask) -> CommandResult:
        self.started.append(task.host)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(task.host, self.default_delay))
            outcome = self.behaviour.get(task.host, 0)
            if isinstance(outcome, BaseException):
                raise outcome
            return CommandResult(output=f"deployed {task.label}\n", error="", returncode=outcome)
        finally:
            self.in_flight -= 1


def make_tasks(count: int) -> list[HostTask]:
    return [HostTask.create(f"h{i}") for i in range(1, count + 1)]


def make_dispatcher(
    operation: StubOperation, tmp_path: Path, parallel: int, **kwargs: object
) -> Dispatcher:
    return Dispatcher(
        operation,
        parallel=parallel,
        log_dir=tmp_path / "logs",
        run_timestamp=TIMESTAMP,
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("parallel", [1, 2, 3, 5])
async def test_concurrency_ceiling(tmp_path: Path, parallel: int) -> None:
    """Never more than P operations in flight, and P are used."""
    operation = StubOperation()

    results = await make_dispatcher(operation, tmp_path, parallel).run(make_tasks(10))

    assert len(results) == 10
    assert operation.max_in_flight == parallel


@pytest.mark.asyncio
async def test_parallel_larger_than_task_count(tmp_path: Path) -> None:
    operation = StubOperation()

    results = await make_dispatcher(operation, tmp_path, 50).run(make_tasks(3))

    assert len(results) == 3
    assert operation.max_in_flight == 3


@pytest.mark.asyncio
async def test_admission_follows_input_order(tmp_path: Path) -> None:
    """Tasks start in input order even when they finish out of order."""
    delays = {"h1": 0.2, "h2": 0.01, "h3": 0.1, "h4": 0.01, "h5": 0.01}
    operation = StubOperation(delays=delays)
    started: list[int] = []

    results = await make_dispatcher(operation, tmp_path, 2).run(
        make_tasks(5), on_start=lambda index, task: started.append(index)
    )

    assert started == [1, 2, 3, 4, 5]
    assert operation.started == ["h1", "h2", "h3", "h4", "h5"]
    assert [r.sequence_index for r in results] != [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_sequential_when_parallel_is_one(tmp_path: Path) -> None:
    """P=1 completes tasks strictly in input order."""
    operation = StubOperation(delays={"h1": 0.05, "h2": 0.01, "h3": 0.03})
    completed: list[DeploymentResult] = []

    await make_dispatcher(operation, tmp_path, 1).run(make_tasks(3), on_result=completed.append)

    assert [r.task.host for r in completed] == ["h1", "h2", "h3"]
    assert operation.max_in_flight == 1


@pytest.mark.asyncio
async def test_failures_are_isolated(tmp_path: Path) -> None:
    """Exit codes, TaskFailure and unexpected exceptions become failed results."""
    operation = StubOperation(
        behaviour={
            "h2": 2,
            "h3": TaskFailure("h3", "host unreachable"),
            "h4": RuntimeError("boom"),
        }
    )

    results = await make_dispatcher(operation, tmp_path, 2).run(make_tasks(5))
    by_host = {r.task.host: r for r in results}

    assert len(results) == 5
    assert by_host["h1"].succeeded and by_host["h5"].succeeded
    assert by_host["h2"].error == "exit code 2"
    assert by_host["h3"].error == "host unreachable"
    assert by_host["h4"].error == "RuntimeError: boom"
    assert not any(by_host[h].succeeded for h in ("h2", "h3", "h4"))


@pytest.mark.asyncio
async def test_cancelled_operation_does_not_stall_the_run(tmp_path: Path) -> None:
    """An operation that raises CancelledError fails its task; the workers carry on."""
    operation = StubOperation(behaviour={"h2": asyncio.CancelledError()})

    results = await asyncio.wait_for(
        make_dispatcher(operation, tmp_path, 2).run(make_tasks(3)), timeout=5
    )
    by_host = {r.task.host: r for r in results}

    assert len(results) == 3
    assert by_host["h1"].succeeded and by_host["h3"].succeeded
    assert not by_host["h2"].succeeded
    assert by_host["h2"].error == "operation cancelled"
    assert "Status:    FAILED" in by_host["h2"].log_path.read_text()


@pytest.mark.asyncio
async def test_timeout_fails_only_the_stuck_task(tmp_path: Path) -> None:
    operation = StubOperation(delays={"h2": 30})

    results = await make_dispatcher(operation, tmp_path, 3, task_timeout=0.2).run(make_tasks(3))
    by_host = {r.task.host: r for r in results}

    assert by_host["h1"].succeeded and by_host["h3"].succeeded
    assert not by_host["h2"].succeeded
    assert by_host["h2"].error == "timed out after 0.2s"


@pytest.mark.asyncio
@pytest.mark.parametrize("parallel", [1, 2, 5])
async def test_outcomes_independent_of_parallelism(tmp_path: Path, parallel: int) -> None:
    """The set of outcomes is the same for every P."""
    operation = StubOperation(behaviour={"h2": 1, "h4": 1}, delays={"h1": 0.03})

    results = await make_dispatcher(operation, tmp_path, parallel).run(make_tasks(5))

    assert sorted((r.sequence_index, r.succeeded) for r in results) == [
        (1, True),
        (2, False),
        (3, True),
        (4, False),
        (5, True),
    ]


@pytest.mark.asyncio
async def test_per_task_log_files(tmp_path: Path) -> None:
    """Each task gets its own log with header, output and trailer."""
    operation = StubOperation(behaviour={"h2": 4})
    tasks = [HostTask.create("h1", "web-01", "web"), HostTask.create("h2", "db-01")]

    results = await make_dispatcher(operation, tmp_path, 2).run(tasks)
    by_host = {r.task.host: r for r in results}

    web_log = by_host["h1"].log_path
    assert web_log == tmp_path / "logs" / f"web-01_{TIMESTAMP}.log"
    content = web_log.read_text()
    assert "Host:    h1" in content
    assert "Group:   web" in content
    assert "deployed web-01" in content
    assert "Status:    SUCCESS" in content

    db_content = by_host["h2"].log_path.read_text()
    assert "Exit code: 4" in db_content
    assert "Status:    FAILED" in db_content


@pytest.mark.asyncio
async def test_duplicate_labels_get_distinct_logs(tmp_path: Path) -> None:
    operation = StubOperation()
    tasks = [HostTask.create("h1"), HostTask.create("h1"), HostTask.create("h1")]

    results = await make_dispatcher(operation, tmp_path, 3).run(tasks)

    paths = {r.log_path for r in results}
    assert len(paths) == 3
    assert all(path.exists() for path in paths)


@pytest.mark.asyncio
async def test_callback_errors_do_not_fail_the_run(tmp_path: Path) -> None:
    def broken(*args: object) -> None:
        raise ValueError("display broke")

    results = await make_dispatcher(StubOperation(), tmp_path, 2).run(
        make_tasks(3), on_start=broken, on_result=broken
    )

    assert len(results) == 3
    assert all(r.succeeded for r in results)


@pytest.mark.asyncio
async def test_empty_task_list(tmp_path: Path) -> None:
    assert await make_dispatcher(StubOperation(), tmp_path, 2).run([]) == []


def test_parallel_must_be_positive(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        make_dispatcher(StubOperation(), tmp_path, 0)


def test_assign_log_paths_respects_reserved_names(tmp_path: Path) -> None:
    """Labels that collide with reserved or earlier names get an index suffix."""
    tasks = [
        HostTask.create("h1", "bulk_deployment"),
        HostTask.create("h2", "web"),
        HostTask.create("h3", "web"),
        HostTask.create("h4", "rack/1"),
    ]

    paths = assign_log_paths(tasks, tmp_path, TIMESTAMP, reserved={"bulk_deployment"})

    assert [p.name for p in paths] == [
        f"bulk_deployment_{TIMESTAMP}_1.log",
        f"web_{TIMESTAMP}.log",
        f"web_{TIMESTAMP}_3.log",
        f"rack_1_{TIMESTAMP}.log",
    ]
    assert all(p.parent == tmp_path for p in paths)
