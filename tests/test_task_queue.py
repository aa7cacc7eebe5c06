from __future__ import annotations

import asyncio

import allure
import pytest

from autorules.orchestrator.task_queue import BoundedTaskQueue

pytestmark = [
    allure.epic("Check Orchestration"),
    allure.feature("Bounded Task Queue"),
]


class _Probe:
    """Track how many probe tasks are running at once."""

    def __init__(self) -> None:
        self.active = 0
        self.peak = 0
        self.log: list[tuple[str, int]] = []

    def task(self, task_id: int, delay: float = 0.01):
        async def _run() -> int:
            self.active += 1
            self.peak = max(self.peak, self.active)
            self.log.append(("start", task_id))
            try:
                await asyncio.sleep(delay)
                return task_id
            finally:
                self.active -= 1
                self.log.append(("end", task_id))

        return _run


def test_rejects_non_positive_max_workers() -> None:
    with pytest.raises(ValueError, match="max_workers must be > 0"):
        BoundedTaskQueue(0)


def test_never_runs_more_than_max_workers() -> None:
    async def scenario() -> tuple[_Probe, list[int]]:
        queue = BoundedTaskQueue(3)
        probe = _Probe()
        futures = [
            queue.enqueue(probe.task(index, delay=0.001 * (index % 4))) for index in range(20)
        ]
        results = await asyncio.gather(*futures)
        await queue.drain()
        return probe, results

    probe, results = asyncio.run(scenario())

    assert probe.peak == 3
    assert results == list(range(20))


def test_two_workers_five_tasks_start_as_slots_free() -> None:
    async def scenario() -> tuple[_Probe, BoundedTaskQueue, tuple[int, int]]:
        queue = BoundedTaskQueue(2)
        probe = _Probe()
        for index in range(1, 6):
            queue.enqueue(probe.task(index, delay=0.02))
        counts_after_submit = (queue.active_count, queue.pending_count)
        await queue.drain()
        return probe, queue, counts_after_submit

    probe, queue, counts_after_submit = asyncio.run(scenario())

    assert counts_after_submit == (2, 3)
    starts = [task_id for event, task_id in probe.log if event == "start"]
    assert starts[:2] == [1, 2]
    assert starts == [1, 2, 3, 4, 5]
    first_end = min(probe.log.index(("end", 1)), probe.log.index(("end", 2)))
    for later in (3, 4, 5):
        assert probe.log.index(("start", later)) > first_end
    assert probe.log[-1] == ("end", 5)
    assert probe.peak == 2
    assert queue.active_count == 0
    assert queue.pending_count == 0


def test_selection_order_is_fifo_with_single_worker() -> None:
    async def scenario() -> list[tuple[str, int]]:
        queue = BoundedTaskQueue(1)
        probe = _Probe()
        for index in range(6):
            queue.enqueue(probe.task(index, delay=0.005 * (6 - index)))
        await queue.drain()
        return probe.log

    log = asyncio.run(scenario())

    assert [task_id for event, task_id in log if event == "start"] == list(range(6))


def test_failing_task_rejects_only_its_own_future() -> None:
    boom = RuntimeError("boom")

    async def failing() -> int:
        await asyncio.sleep(0)
        raise boom

    async def scenario() -> list[object]:
        queue = BoundedTaskQueue(1)
        probe = _Probe()
        futures = [
            queue.enqueue(probe.task(1)),
            queue.enqueue(failing),
            queue.enqueue(probe.task(3)),
            queue.enqueue(probe.task(4)),
        ]
        outcomes = await asyncio.gather(*futures, return_exceptions=True)
        await queue.drain()
        return outcomes

    outcomes = asyncio.run(scenario())

    assert outcomes[0] == 1
    assert outcomes[1] is boom
    assert outcomes[2:] == [3, 4]


def test_drain_on_empty_queue_returns_immediately() -> None:
    async def scenario() -> None:
        queue = BoundedTaskQueue(2)
        await asyncio.wait_for(queue.drain(), timeout=1)

    asyncio.run(scenario())


def test_drain_waits_for_tasks_enqueued_by_running_tasks() -> None:
    async def scenario() -> tuple[list[str], int]:
        queue = BoundedTaskQueue(2)
        done: list[str] = []
        active = 0
        peak = 0

        def make(name: str, depth: int):
            async def _run() -> str:
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                try:
                    await asyncio.sleep(0.002)
                    if depth < 3:
                        queue.enqueue(make(f"{name}.a", depth + 1))
                        queue.enqueue(make(f"{name}.b", depth + 1))
                    done.append(name)
                    return name
                finally:
                    active -= 1

            return _run

        queue.enqueue(make("root", 0))
        await queue.drain()
        return done, peak

    done, peak = asyncio.run(scenario())

    assert len(done) == 1 + 2 + 4 + 8
    assert peak <= 2


def test_drain_waits_for_tasks_enqueued_from_done_callbacks() -> None:
    async def scenario() -> list[str]:
        queue = BoundedTaskQueue(1)
        done: list[str] = []

        async def child() -> None:
            await asyncio.sleep(0.001)
            done.append("child")

        async def parent() -> None:
            done.append("parent")

        future = queue.enqueue(parent)
        future.add_done_callback(lambda _: queue.enqueue(child))
        await queue.drain()
        return done

    assert asyncio.run(scenario()) == ["parent", "child"]


def test_enqueue_is_accepted_while_all_slots_are_busy() -> None:
    async def scenario() -> tuple[int, int]:
        queue = BoundedTaskQueue(1)
        gate = asyncio.Event()

        async def blocker() -> None:
            await gate.wait()

        queue.enqueue(blocker)
        for _ in range(10):
            queue.enqueue(blocker)
        snapshot = (queue.active_count, queue.pending_count)
        gate.set()
        await queue.drain()
        return snapshot

    assert asyncio.run(scenario()) == (1, 10)
