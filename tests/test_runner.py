from __future__ import annotations

import asyncio

import allure

from autorules.orchestrator import progress
from autorules.orchestrator.backend.base import BackendRunError
from autorules.orchestrator.prompts import PASS_SENTINEL, SUMMARY_PROMPT
from autorules.orchestrator.runner import CheckRunner
from autorules.orchestrator.worker import WorkerOptions
from autorules.scanner import scan_project

pytestmark = [
    allure.epic("Check Orchestration"),
    allure.feature("Check Runner"),
]

SUMMARY_MARKER = SUMMARY_PROMPT.splitlines()[0]

PROJECT = {
    "autorules/a.md": "title: Rule A\nfiles: src/*.ts\n---\nCriteria A",
    "autorules/b.md": "title: Rule B\nfiles: docs/*.md\n---\nCriteria B",
    "autorules/c.md": "title: Rule C\nfiles: **/*.rs\n---\nCriteria C",
    "src/1.ts": "one",
    "src/2.ts": "two",
    "src/3.ts": "console.log(3)",
    "docs/x.md": "# x",
    "docs/y.md": "# y",
}


def _run(root, backend, *, max_workers: int = 2):
    scan = scan_project(root)
    state = progress.create_progress_state(
        workers=max_workers,
        model="openai/gpt-5-mini",
        rules=scan.rules,
        total_files=len(scan.items),
        expected_counts=scan.expected_counts,
    )
    runner = CheckRunner(
        options=WorkerOptions(backend=backend, root_dir=root),
        max_workers=max_workers,
        state=state,
    )
    return asyncio.run(runner.run(scan)), state


def _rule_of(prompt: str) -> str:
    for title, criteria in (("Rule A", "Criteria A"), ("Rule B", "Criteria B")):
        if f'Rule: "{title}"' in prompt or f"> {criteria}" in prompt:
            return title
    raise AssertionError(prompt)


def _responder(request):
    if request.prompt.startswith(SUMMARY_MARKER):
        return f"summary of {_rule_of(request.prompt)}"
    if "console.log(3)" in request.prompt:
        return "Line 1 calls console.log."
    return PASS_SENTINEL


def test_every_check_and_one_summary_per_rule(make_project, scripted_backend) -> None:
    root = make_project(PROJECT)
    backend = scripted_backend(_responder, delay=lambda request: 0.001 * (len(request.prompt) % 5))

    run_result, state = _run(root, backend)

    assert len(run_result.results) == 5
    assert run_result.failed_count == 1
    assert run_result.has_failures
    assert [summary.rule.title for summary in run_result.summaries] == ["Rule A", "Rule B"]
    summary_a, summary_b = run_result.summaries
    assert summary_a.summary_text == "summary of Rule A"
    assert (summary_a.total_checked, summary_a.failed_count) == (3, 1)
    assert (summary_b.total_checked, summary_b.failed_count) == (2, 0)
    assert run_result.failed_summaries == {}
    assert state.completed_files == 5
    assert set(state.summaries) == {"Rule A", "Rule B"}


def test_concurrency_bound_covers_checks_and_summaries(make_project, scripted_backend) -> None:
    root = make_project(PROJECT)
    backend = scripted_backend(_responder, delay=0.003)

    _run(root, backend, max_workers=2)

    assert backend.peak == 2
    assert len(backend.requests) == 5 + 2


def test_summary_is_requested_after_all_checks_of_its_rule(
    make_project,
    scripted_backend,
) -> None:
    root = make_project(PROJECT)
    backend = scripted_backend(_responder, delay=lambda request: 0.001 * (len(request.prompt) % 3))

    _run(root, backend, max_workers=3)

    order = [
        (request.prompt.startswith(SUMMARY_MARKER), _rule_of(request.prompt))
        for request in backend.requests
    ]
    for title, checks in (("Rule A", 3), ("Rule B", 2)):
        summary_index = order.index((True, title))
        assert order[:summary_index].count((False, title)) == checks
        assert order.count((True, title)) == 1


def test_failed_summary_is_recorded_and_run_finishes(
    make_project,
    scripted_backend,
    caplog,
) -> None:
    root = make_project(PROJECT)

    def responder(request):
        if request.prompt.startswith(SUMMARY_MARKER) and 'Rule: "Rule B"' in request.prompt:
            return BackendRunError("Completion API returned HTTP 500: boom", transient=True)
        return _responder(request)

    run_result, _ = _run(root, scripted_backend(responder))

    assert [summary.rule.title for summary in run_result.summaries] == ["Rule A"]
    assert run_result.failed_summaries == {
        "Rule B": "Completion API returned HTTP 500: boom",
    }
    assert "Summary generation failed for rule 'Rule B'" in caplog.text


def test_check_failures_do_not_block_summaries(make_project, scripted_backend) -> None:
    root = make_project(PROJECT)

    def responder(request):
        if request.prompt.startswith("FILENAME: docs/x.md\n"):
            return RuntimeError("connection reset")
        return _responder(request)

    run_result, _ = _run(root, scripted_backend(responder))

    errors = [result for result in run_result.results if result.error]
    assert [result.file for result in errors] == ["docs/x.md"]
    summary_b = run_result.summaries[1]
    assert (summary_b.total_checked, summary_b.failed_count) == (2, 1)


def test_rules_sharing_a_title_get_one_summary(make_project, scripted_backend) -> None:
    root = make_project(
        {
            "pkg1/autorules/r.md": "title: Shared\nfiles: *.py\n---\nNo prints",
            "pkg2/autorules/r.md": "title: Shared\nfiles: *.py\n---\nNo prints",
            "pkg1/a.py": "a = 1",
            "pkg2/b.py": "b = 2",
            "pkg2/c.py": "c = 3",
        },
    )
    backend = scripted_backend()

    run_result, _ = _run(root, backend)

    assert len(run_result.results) == 3
    assert len(run_result.summaries) == 1
    assert run_result.summaries[0].total_checked == 3
    assert len(backend.summary_requests) == 1
