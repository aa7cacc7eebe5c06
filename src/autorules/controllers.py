"""Controller for the check CLI command."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from autorules.config import Settings
from autorules.orchestrator import progress
from autorules.orchestrator.backend import LlmBackend, OpenRouterBackend
from autorules.orchestrator.model_options import build_provider_options
from autorules.orchestrator.progress import (
    LogRenderer,
    NullRenderer,
    ProgressRenderer,
    ProgressState,
)
from autorules.orchestrator.runner import CheckRunner, CheckRunResult
from autorules.orchestrator.worker import WorkerOptions
from autorules.report import ReportOptions, write_html_report
from autorules.scanner import RuleFormatError, ScanResult, scan_project
from autorules.tui import LiveRenderer

logger = logging.getLogger(__name__)

BackendFactory = Callable[[Settings], LlmBackend]


@dataclass(slots=True)
class CheckCommand:
    """CLI input for one check run; None means "use the environment/default"."""

    workers: int | None = None
    report_format: str | None = None
    model: str | None = None
    api_key: str | None = None
    output_path: Path | None = None
    provider: str | None = None
    provider_sort: str | None = None
    root_dir: Path | None = None
    display: str | None = None
    log_level: str | None = None


@dataclass(slots=True)
class CheckCommandResult:
    """Lines to print and the process exit code."""

    lines: list[str]
    exit_code: int
    error: str | None = None


def default_backend_factory(settings: Settings) -> LlmBackend:
    return OpenRouterBackend(
        api_key=settings.llm.api_key or "",
        base_url=settings.llm.base_url,
        timeout_seconds=settings.llm.request_timeout_seconds,
        max_retries=settings.llm.max_retries,
    )


class AutoRulesCliController:
    """Coordinates settings, scan, queued checks, and the report for the CLI."""

    def __init__(
        self,
        *,
        backend_factory: BackendFactory = default_backend_factory,
        echo: Callable[[str], None] = print,
    ) -> None:
        self._backend_factory = backend_factory
        self._echo = echo

    def check(self, command: CheckCommand) -> CheckCommandResult:
        try:
            settings = resolve_settings(command)
            settings.validate()
        except ValueError as error:
            return CheckCommandResult(lines=[], exit_code=1, error=str(error))

        console = Console(stderr=True)
        configure_logging(settings.run.log_level, console=console)

        self._echo("Scanning for autorules...\n")
        try:
            scan = scan_project(settings.run.root_dir)
        except RuleFormatError as error:
            return CheckCommandResult(lines=[], exit_code=1, error=str(error))

        if not scan.rules:
            return CheckCommandResult(
                lines=[],
                exit_code=1,
                error="No autorules found in the project.",
            )
        if not scan.items:
            return CheckCommandResult(
                lines=[],
                exit_code=1,
                error="No files found matching the autorules patterns.",
            )
        self._echo(
            f"Found {len(scan.rules)} rule(s) and {len(scan.items)} file(s) to check.\n",
        )

        logger.info(
            "Starting check run: workers=%d model=%s display=%s root=%s",
            settings.run.workers,
            settings.llm.model,
            settings.run.display,
            settings.run.root_dir,
        )
        renderer = self._renderer(settings.run.display, console)
        state = progress.create_progress_state(
            workers=settings.run.workers,
            model=settings.llm.model,
            rules=scan.rules,
            total_files=len(scan.items),
            expected_counts=scan.expected_counts,
            renderer=renderer,
        )
        try:
            run_result = asyncio.run(self._run(settings, scan, state))
            progress.complete(state)
        except BaseException:
            progress.fail(state)
            raise
        finally:
            if isinstance(renderer, LiveRenderer):
                renderer.stop()

        lines: list[str] = []
        if settings.report.report_format == "html":
            output_path = settings.report.output_path.resolve()
            self._echo("Generating HTML report...")
            write_html_report(
                run_result.results,
                scan.rules,
                run_result.summaries,
                output_path,
                ReportOptions(
                    model=settings.llm.model,
                    workers=settings.run.workers,
                    duration_seconds=run_result.duration_seconds,
                ),
            )
            lines.append(f"✓ Report saved to {output_path}\n")

        lines.extend(render_summary_lines(run_result))
        return CheckCommandResult(lines=lines, exit_code=1 if run_result.has_failures else 0)

    async def _run(
        self,
        settings: Settings,
        scan: ScanResult,
        state: ProgressState,
    ) -> CheckRunResult:
        backend = self._backend_factory(settings)
        try:
            runner = CheckRunner(
                options=WorkerOptions(
                    backend=backend,
                    root_dir=settings.run.root_dir,
                    model=settings.llm.model,
                    provider=build_provider_options(
                        settings.llm.provider_only,
                        settings.llm.provider_sort,
                    ),
                ),
                max_workers=settings.run.workers,
                state=state,
            )
            return await runner.run(scan)
        finally:
            close = getattr(backend, "aclose", None)
            if close is not None:
                await close()

    def _renderer(self, display: str, console: Console) -> ProgressRenderer:
        if display == "live":
            return LiveRenderer(console)
        if display == "log":
            return LogRenderer(emit=self._echo)
        return NullRenderer()


def resolve_settings(command: CheckCommand) -> Settings:
    """Environment settings with CLI overrides applied."""

    settings = Settings.from_env()
    if command.api_key:
        settings.llm.api_key = command.api_key
    if command.model:
        settings.llm.model = command.model
    if command.provider:
        settings.llm.provider_only = command.provider
    if command.provider_sort:
        settings.llm.provider_sort = command.provider_sort
    if command.workers is not None:
        settings.run.workers = command.workers
    if command.root_dir is not None:
        settings.run.root_dir = command.root_dir
    if command.display:
        settings.run.display = command.display.lower()
    if command.log_level:
        settings.run.log_level = command.log_level.upper()
    if command.report_format:
        settings.report.report_format = command.report_format.lower()
    if command.output_path is not None:
        settings.report.output_path = command.output_path
    settings.run.root_dir = settings.run.root_dir.resolve()
    return settings


def render_summary_lines(run_result: CheckRunResult) -> list[str]:
    lines = [
        "",
        "Summary:",
        f"  Total: {len(run_result.results)}",
        f"  Passed: {run_result.passed_count}",
        f"  Failed: {run_result.failed_count}",
    ]
    if run_result.failed_summaries:
        lines.append(
            "  Summaries failed: " + ", ".join(sorted(run_result.failed_summaries)),
        )
    return lines


def configure_logging(level: str, *, console: Console | None = None) -> None:
    """Route package logs through a rich handler on ``console``."""

    package_logger = logging.getLogger("autorules")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
