from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import allure

from autorules.orchestrator.backend.base import BackendRunError
from autorules.orchestrator.prompts import PASS_SENTINEL
from autorules.orchestrator.task_queue import BoundedTaskQueue
from autorules.orchestrator.worker import (
    WorkerOptions,
    check_file,
    is_passing_response,
    process_files,
)
from autorules.scanner import AutoRule, CheckItem

pytestmark = [
    allure.epic("Check Orchestration"),
    allure.feature("Check Executor"),
]


def _rule(root: Path, *, include_path: str | None = None) -> AutoRule:
    return AutoRule(
        title="No console",
        file_pattern="src/**/*.ts",
        criteria="Files must not call console.log.",
        source_path=root / "autorules" / "no-console.md",
        include_path=include_path,
    )


def test_sentinel_prefix_classifies_response() -> None:
    assert is_passing_response(PASS_SENTINEL)
    assert is_passing_response(f"  {PASS_SENTINEL}.\n")
    assert not is_passing_response(f"Mostly fine. {PASS_SENTINEL}")
    assert not is_passing_response("this passes your criteria")
    assert not is_passing_response("")


def test_check_file_builds_prompt_and_reports_usage(make_project, scripted_backend) -> None:
    root = make_project({"src/app.ts": "export const x = 1;\n"})
    backend = scripted_backend(tokens=42, cost=0.0021)
    item = CheckItem(path=root / "src" / "app.ts", rule=_rule(root))

    result = asyncio.run(check_file(item, WorkerOptions(backend=backend, root_dir=root)))

    assert result.passed is True
    assert result.file == "src/app.ts"
    assert result.rule_title == "No console"
    assert result.rule_reference == str(root / "autorules" / "no-console.md")
    assert result.response == PASS_SENTINEL
    assert result.tokens == 42
    assert result.cost == 0.0021
    assert result.error is None
    prompt = backend.requests[0].prompt
    assert prompt.startswith("FILENAME: src/app.ts\n")
    assert "export const x = 1;" in prompt
    assert "> Files must not call console.log." in prompt
    assert backend.requests[0].model == "openai/gpt-5-mini"


def test_failing_response_is_kept_verbatim(make_project, scripted_backend) -> None:
    root = make_project({"src/app.ts": "console.log(1)\n"})
    backend = scripted_backend(lambda _: "  Line 1 calls console.log.  ")
    item = CheckItem(path=root / "src" / "app.ts", rule=_rule(root))

    result = asyncio.run(check_file(item, WorkerOptions(backend=backend, root_dir=root)))

    assert result.passed is False
    assert result.response == "Line 1 calls console.log."
    assert result.error is None


def test_include_file_content_is_embedded(make_project, scripted_backend) -> None:
    root = make_project(
        {
            "src/app.ts": "export {}\n",
            "autorules/allowed.txt": "logger.ts may log\n",
        },
    )
    backend = scripted_backend()
    item = CheckItem(path=root / "src" / "app.ts", rule=_rule(root, include_path="allowed.txt"))

    asyncio.run(check_file(item, WorkerOptions(backend=backend, root_dir=root)))

    prompt = backend.requests[0].prompt
    assert "File: allowed.txt\nContent:\n```\nlogger.ts may log\n" in prompt


def test_missing_include_file_warns_and_checks_without_it(
    make_project,
    scripted_backend,
    caplog,
) -> None:
    root = make_project({"src/app.ts": "export {}\n"})
    backend = scripted_backend()
    item = CheckItem(path=root / "src" / "app.ts", rule=_rule(root, include_path="missing.txt"))

    with caplog.at_level(logging.WARNING, logger="autorules"):
        result = asyncio.run(check_file(item, WorkerOptions(backend=backend, root_dir=root)))

    assert result.passed is True
    assert "Could not read includes file missing.txt" in caplog.text
    assert "File: missing.txt" not in backend.requests[0].prompt


def test_unreadable_file_becomes_failed_result(make_project, scripted_backend) -> None:
    root = make_project({})
    backend = scripted_backend()
    item = CheckItem(path=root / "src" / "gone.ts", rule=_rule(root))

    result = asyncio.run(check_file(item, WorkerOptions(backend=backend, root_dir=root)))

    assert result.passed is False
    assert result.response == ""
    assert result.error
    assert result.file == "src/gone.ts"
    assert backend.requests == []


def test_backend_error_becomes_failed_result(make_project, scripted_backend) -> None:
    root = make_project({"src/app.ts": "export {}\n"})
    backend = scripted_backend(lambda _: BackendRunError("HTTP 429", transient=True))
    item = CheckItem(path=root / "src" / "app.ts", rule=_rule(root))

    result = asyncio.run(check_file(item, WorkerOptions(backend=backend, root_dir=root)))

    assert result.passed is False
    assert result.response == ""
    assert result.error == "HTTP 429"
    assert result.tokens is None


def test_process_files_keeps_going_after_failures(make_project, scripted_backend) -> None:
    files = {f"src/f{index}.ts": f"// {index}\n" for index in range(6)}
    root = make_project(files)

    def responder(request):
        if "src/f2.ts" in request.prompt:
            return RuntimeError("connection reset")
        if "src/f4.ts" in request.prompt:
            return "console.log found"
        return PASS_SENTINEL

    backend = scripted_backend(responder, delay=0.001)
    rule = _rule(root)
    items = [CheckItem(path=root / name, rule=rule) for name in files]
    seen: list[str] = []

    async def scenario():
        queue = BoundedTaskQueue(2)
        results = await process_files(
            items,
            WorkerOptions(backend=backend, root_dir=root),
            queue,
            lambda result: seen.append(result.file),
        )
        await queue.drain()
        return results

    results = asyncio.run(scenario())

    assert len(results) == 6
    assert [result.file for result in results] == seen
    by_file = {result.file: result for result in results}
    assert by_file["src/f2.ts"].error == "connection reset"
    assert by_file["src/f4.ts"].passed is False
    assert sum(1 for result in results if result.passed) == 4
    assert backend.peak <= 2
