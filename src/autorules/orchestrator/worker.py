"""Check one file against one rule, and submit batches of checks to the queue."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from autorules.orchestrator.backend.base import CompletionRequest, LlmBackend
from autorules.orchestrator.model_options import ProviderOptions
from autorules.orchestrator.models import CheckResult
from autorules.orchestrator.prompts import PASS_SENTINEL, build_check_prompt
from autorules.orchestrator.task_queue import BoundedTaskQueue
from autorules.scanner import CheckItem

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-5-mini"


@dataclass(slots=True)
class WorkerOptions:
    """Per-check configuration shared by every check task of a run."""

    backend: LlmBackend
    root_dir: Path
    model: str = DEFAULT_MODEL
    provider: ProviderOptions | None = None


def is_passing_response(response: str) -> bool:
    """Classify a response as passing by its literal leading sentinel."""

    return response.strip().startswith(PASS_SENTINEL)


async def check_file(item: CheckItem, options: WorkerOptions) -> CheckResult:
    """Ask the model whether ``item.path`` satisfies ``item.rule``.

    Never raises for read or backend failures: those become a failed result
    with the error message set.
    """

    rule = item.rule
    relative_path = _relative_path(item.path, options.root_dir)
    try:
        content = await asyncio.to_thread(item.path.read_text, "utf-8")
        include_content = await _read_include(item)
        prompt = build_check_prompt(
            relative_path=relative_path,
            content=content,
            criteria=rule.criteria,
            include_name=rule.include_path if include_content is not None else None,
            include_content=include_content,
        )
        completion = await options.backend.complete(
            CompletionRequest(prompt=prompt, model=options.model, provider=options.provider),
        )
    except Exception as error:  # noqa: BLE001
        logger.debug("Check failed for %s (%s): %s", relative_path, rule.title, error)
        return CheckResult(
            file=relative_path,
            rule_reference=str(rule.source_path),
            rule_title=rule.title,
            passed=False,
            response="",
            error=str(error) or type(error).__name__,
        )

    response = completion.text.strip()
    return CheckResult(
        file=relative_path,
        rule_reference=str(rule.source_path),
        rule_title=rule.title,
        passed=is_passing_response(response),
        response=response,
        tokens=completion.total_tokens,
        cost=completion.cost,
    )


async def process_files(
    items: list[CheckItem],
    options: WorkerOptions,
    queue: BoundedTaskQueue,
    on_result: Callable[[CheckResult], None],
) -> list[CheckResult]:
    """Queue one check task per item and wait for all of them.

    ``on_result`` runs inside each task right after its result is built, so
    callbacks are applied one at a time in arrival order.  The returned list
    is in arrival order too.
    """

    results: list[CheckResult] = []

    def _make_task(item: CheckItem) -> Callable[[], Awaitable[CheckResult]]:
        async def _run() -> CheckResult:
            result = await check_file(item, options)
            results.append(result)
            on_result(result)
            return result

        return _run

    futures = [queue.enqueue(_make_task(item)) for item in items]
    await asyncio.gather(*futures)
    return results


async def _read_include(item: CheckItem) -> str | None:
    include_file = item.rule.include_file
    if include_file is None:
        return None
    try:
        return await asyncio.to_thread(include_file.read_text, "utf-8")
    except (OSError, UnicodeDecodeError) as error:
        logger.warning(
            "Could not read includes file %s: %s",
            item.rule.include_path,
            error,
        )
        return None


def _relative_path(path: Path, root_dir: Path) -> str:
    try:
        return path.relative_to(root_dir).as_posix()
    except ValueError:
        return Path(os.path.relpath(path, root_dir)).as_posix()
