"""Detect when every expected result of a rule has arrived."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from autorules.orchestrator.models import CheckResult

logger = logging.getLogger(__name__)

RuleCompleteCallback = Callable[[str, list[CheckResult]], None]


class RuleCompletionTracker:
    """Collect results per rule title and fire ``on_rule_complete`` once per rule.

    ``record`` must be called for each result in arrival order and from one
    place only; it does not suspend, so on a single event loop two results can
    never observe the same "complete" state.  The triggered guard is set before
    the callback runs.
    """

    def __init__(
        self,
        expected_counts: Mapping[str, int],
        on_rule_complete: RuleCompleteCallback,
    ) -> None:
        self._expected = dict(expected_counts)
        self._results: dict[str, list[CheckResult]] = {title: [] for title in self._expected}
        self._seen: dict[str, set[tuple[str, str]]] = {title: set() for title in self._expected}
        self._triggered: set[str] = set()
        self._on_rule_complete = on_rule_complete

    def expected_count(self, rule_title: str) -> int:
        return self._expected.get(rule_title, 0)

    def results_for(self, rule_title: str) -> list[CheckResult]:
        return list(self._results.get(rule_title, ()))

    def is_triggered(self, rule_title: str) -> bool:
        return rule_title in self._triggered

    @property
    def triggered_rules(self) -> frozenset[str]:
        return frozenset(self._triggered)

    def record(self, result: CheckResult) -> bool:
        """Record ``result``; return True when this call triggered the rule's summary."""

        title = result.rule_title
        if title not in self._expected:
            logger.warning("Result for unknown rule %r ignored (file=%s)", title, result.file)
            return False

        seen = self._seen[title]
        key = (result.rule_reference, result.file)
        if key in seen:
            logger.debug("Duplicate result for rule %r file=%s ignored", title, result.file)
            return False
        seen.add(key)
        rule_results = self._results[title]
        rule_results.append(result)

        expected = self._expected[title]
        if expected == 0 or len(rule_results) != expected or title in self._triggered:
            return False

        self._triggered.add(title)
        logger.debug("Rule %r complete with %d results", title, expected)
        self._on_rule_complete(title, list(rule_results))
        return True
