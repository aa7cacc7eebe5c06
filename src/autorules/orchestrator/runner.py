"""Coordinator for one check run: checks, completion tracking, summaries."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from autorules.orchestrator import progress
from autorules.orchestrator.completion import RuleCompletionTracker
from autorules.orchestrator.models import CheckResult, RuleSummary
from autorules.orchestrator.progress import ProgressState
from autorules.orchestrator.summarizer import enqueue_summary
from autorules.orchestrator.task_queue import BoundedTaskQueue
from autorules.orchestrator.worker import WorkerOptions, process_files
from autorules.scanner import AutoRule, ScanResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CheckRunResult:
    """Everything a caller needs to report on a finished run."""

    results: list[CheckResult]
    summaries: list[RuleSummary]
    duration_seconds: int
    failed_summaries: dict[str, str] = field(default_factory=dict)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.passed)

    @property
    def passed_count(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def has_failures(self) -> bool:
        return self.failed_count > 0


class CheckRunner:
    """Run every check of a scan on one bounded queue and summarize each rule once.

    Check results flow into the progress state and the completion tracker from
    inside the check task, one at a time.  A rule whose results are all in gets
    its summary task submitted to the same queue; ``run`` returns after the
    queue has drained.
    """

    def __init__(
        self,
        *,
        options: WorkerOptions,
        max_workers: int,
        state: ProgressState,
    ) -> None:
        self._options = options
        self._max_workers = max_workers
        self._state = state
        self._failed_summaries: dict[str, str] = {}

    async def run(self, scan: ScanResult) -> CheckRunResult:
        started = time.monotonic()
        queue = BoundedTaskQueue(self._max_workers)
        rules_by_title: dict[str, AutoRule] = {}
        for rule in scan.rules:
            rules_by_title.setdefault(rule.title, rule)

        def _on_rule_complete(title: str, results: list[CheckResult]) -> None:
            rule = rules_by_title.get(title)
            if rule is None:
                return
            future = enqueue_summary(
                queue,
                rule,
                results,
                backend=self._options.backend,
                model=self._options.model,
                provider=self._options.provider,
            )
            future.add_done_callback(lambda done: self._on_summary_done(title, done))

        tracker = RuleCompletionTracker(scan.expected_counts, _on_rule_complete)

        def _on_result(result: CheckResult) -> None:
            progress.update(self._state, result)
            tracker.record(result)

        results = await process_files(scan.items, self._options, queue, _on_result)
        await queue.drain()

        duration = int(time.monotonic() - started)
        summaries = [
            self._state.summaries[rule.title]
            for rule in scan.rules
            if rule.title in self._state.summaries and rules_by_title[rule.title] is rule
        ]
        logger.info(
            "Run finished: checks=%d failed=%d summaries=%d failed_summaries=%d duration=%ds",
            len(results),
            sum(1 for result in results if not result.passed),
            len(summaries),
            len(self._failed_summaries),
            duration,
        )
        return CheckRunResult(
            results=results,
            summaries=summaries,
            duration_seconds=duration,
            failed_summaries=dict(self._failed_summaries),
        )

    def _on_summary_done(self, title: str, future: asyncio.Future[RuleSummary]) -> None:
        if future.cancelled():
            self._failed_summaries[title] = "canceled"
            return
        error = future.exception()
        if error is not None:
            logger.error("Summary generation failed for rule %r: %s", title, error)
            self._failed_summaries[title] = str(error) or type(error).__name__
            return
        progress.add_summary(self._state, future.result())
