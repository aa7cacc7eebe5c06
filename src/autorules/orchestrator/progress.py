"""Progress aggregation for a check run and pluggable renderers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from autorules.orchestrator.models import CheckResult, RuleSummary, RunStatus
from autorules.scanner import AutoRule

logger = logging.getLogger(__name__)


class ProgressRenderer(Protocol):
    """Projection of ``ProgressState`` onto some output."""

    def render(self, state: ProgressState) -> None:
        """Show the current state."""


@dataclass(slots=True)
class RuleProgress:
    """Per-rule view derived from progress state."""

    rule: AutoRule
    completed: int
    expected: int
    failures: int
    has_summary: bool

    @property
    def percentage(self) -> int:
        if self.expected == 0:
            return 100
        return int(self.completed * 100 / self.expected)

    @property
    def awaiting_summary(self) -> bool:
        return self.expected > 0 and self.completed >= self.expected and not self.has_summary


@dataclass(slots=True)
class ProgressState:
    """Mutable totals for one run; mutated only through the functions below."""

    workers: int
    model: str
    rules: list[AutoRule]
    total_files: int
    expected_counts: dict[str, int] = field(default_factory=dict)
    renderer: ProgressRenderer | None = None
    status: RunStatus = RunStatus.PROCESSING
    start_time: float = field(default_factory=time.monotonic)
    completed_files: int = 0
    failure_count: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    results: list[CheckResult] = field(default_factory=list)
    summaries: dict[str, RuleSummary] = field(default_factory=dict)

    def elapsed_seconds(self, now: float | None = None) -> int:
        return int((now if now is not None else time.monotonic()) - self.start_time)

    def eta_seconds(self, now: float | None = None) -> int:
        """Remaining time estimated from the completion rate so far; 0 when unknown."""

        elapsed = (now if now is not None else time.monotonic()) - self.start_time
        if self.completed_files == 0 or elapsed <= 0:
            return 0
        rate = self.completed_files / elapsed
        remaining = self.total_files - self.completed_files
        return max(0, int(remaining / rate))

    def rule_progress(self) -> list[RuleProgress]:
        """One row per rule title; rules sharing a title share their counts."""

        completed: dict[str, int] = {}
        failures: dict[str, int] = {}
        for result in self.results:
            completed[result.rule_title] = completed.get(result.rule_title, 0) + 1
            if not result.passed:
                failures[result.rule_title] = failures.get(result.rule_title, 0) + 1
        return [
            RuleProgress(
                rule=rule,
                completed=completed.get(rule.title, 0),
                expected=self.expected_counts.get(rule.title, 0),
                failures=failures.get(rule.title, 0),
                has_summary=rule.title in self.summaries,
            )
            for rule in _first_per_title(self.rules)
        ]


def create_progress_state(  # noqa: PLR0913
    *,
    workers: int,
    model: str,
    rules: list[AutoRule],
    total_files: int,
    expected_counts: dict[str, int] | None = None,
    renderer: ProgressRenderer | None = None,
) -> ProgressState:
    return ProgressState(
        workers=workers,
        model=model,
        rules=list(rules),
        total_files=total_files,
        expected_counts=dict(expected_counts or {}),
        renderer=renderer,
    )


def update(state: ProgressState, result: CheckResult) -> None:
    """Fold one check result into the totals and re-render."""

    state.results.append(result)
    state.completed_files += 1
    if not result.passed:
        state.failure_count += 1
    if result.tokens:
        state.total_tokens += result.tokens
    if result.cost:
        state.total_cost += result.cost
    _render(state)


def add_summary(state: ProgressState, summary: RuleSummary) -> None:
    """Record a rule summary under the rule title and re-render."""

    state.summaries[summary.rule.title] = summary
    _render(state)


def complete(state: ProgressState) -> None:
    state.status = RunStatus.COMPLETED
    _render(state)


def fail(state: ProgressState) -> None:
    state.status = RunStatus.FAILED
    _render(state)


def _render(state: ProgressState) -> None:
    if state.renderer is not None:
        state.renderer.render(state)


class NullRenderer:
    """Renderer that shows nothing."""

    def render(self, state: ProgressState) -> None:
        return None


class LogRenderer:
    """Emit one plain line per state change."""

    def __init__(self, emit: Callable[[str], None] | None = None) -> None:
        self._emit = emit or logger.info

    def render(self, state: ProgressState) -> None:
        self._emit(format_progress_line(state))


def format_progress_line(state: ProgressState) -> str:
    return (
        f"status={state.status.value} "
        f"completed={state.completed_files}/{state.total_files} "
        f"failures={state.failure_count} "
        f"summaries={len(state.summaries)}/{len({rule.title for rule in state.rules})} "
        f"tokens={state.total_tokens} cost=${state.total_cost:.6f}"
    )


def _first_per_title(rules: list[AutoRule]) -> list[AutoRule]:
    seen: set[str] = set()
    unique: list[AutoRule] = []
    for rule in rules:
        if rule.title not in seen:
            seen.add(rule.title)
            unique.append(rule)
    return unique
