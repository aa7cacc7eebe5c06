"""Domain models for check results, rule summaries, and run status."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from autorules.scanner import AutoRule


class RunStatus(str, Enum):
    """Lifecycle of one check run as shown in the progress view."""

    SCANNING = "Scanning"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Outcome of checking one file against one rule."""

    file: str
    rule_reference: str
    rule_title: str
    passed: bool
    response: str
    error: str | None = None
    tokens: int | None = None
    cost: float | None = None


@dataclass(frozen=True, slots=True)
class RuleSummary:
    """Narrative summary of all check results for one rule."""

    rule: AutoRule
    summary_text: str
    total_checked: int
    passed_count: int
    failed_count: int

    @property
    def has_failures(self) -> bool:
        return self.failed_count > 0
