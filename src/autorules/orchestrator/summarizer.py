"""Per-rule narrative summaries, generated as tasks on the shared queue."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from autorules.orchestrator.backend.base import CompletionRequest, LlmBackend
from autorules.orchestrator.model_options import ProviderOptions
from autorules.orchestrator.models import CheckResult, RuleSummary
from autorules.orchestrator.prompts import SUMMARY_PROMPT, SUMMARY_RESULT_ENTRY
from autorules.orchestrator.task_queue import BoundedTaskQueue
from autorules.scanner import AutoRule

logger = logging.getLogger(__name__)


def build_summary_prompt(rule: AutoRule, results: Sequence[CheckResult]) -> str:
    """Render the summary prompt embedding every result of the rule."""

    results_text = "\n---\n".join(
        SUMMARY_RESULT_ENTRY.format(
            file=result.file,
            status="PASSED" if result.passed else "FAILED",
            response=result.response,
        )
        for result in results
    )
    return SUMMARY_PROMPT.format(
        title=rule.title,
        criteria=rule.criteria,
        result_count=len(results),
        results_text=results_text,
    )


async def generate_summary(
    rule: AutoRule,
    results: Sequence[CheckResult],
    *,
    backend: LlmBackend,
    model: str,
    provider: ProviderOptions | None = None,
) -> RuleSummary:
    """Ask the model for a markdown summary of one rule's results."""

    snapshot = tuple(results)
    passed = sum(1 for result in snapshot if result.passed)
    completion = await backend.complete(
        CompletionRequest(
            prompt=build_summary_prompt(rule, snapshot),
            model=model,
            provider=provider,
        ),
    )
    logger.info(
        "Summary generated: rule=%r checked=%d passed=%d",
        rule.title,
        len(snapshot),
        passed,
    )
    return RuleSummary(
        rule=rule,
        summary_text=completion.text.strip(),
        total_checked=len(snapshot),
        passed_count=passed,
        failed_count=len(snapshot) - passed,
    )


def enqueue_summary(  # noqa: PLR0913
    queue: BoundedTaskQueue,
    rule: AutoRule,
    results: Sequence[CheckResult],
    *,
    backend: LlmBackend,
    model: str,
    provider: ProviderOptions | None = None,
) -> asyncio.Future[RuleSummary]:
    """Submit the summary for ``rule`` as one task on ``queue``."""

    snapshot = tuple(results)

    async def _run() -> RuleSummary:
        return await generate_summary(
            rule,
            snapshot,
            backend=backend,
            model=model,
            provider=provider,
        )

    return queue.enqueue(_run)
