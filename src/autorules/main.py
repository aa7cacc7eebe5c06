"""CLI entrypoint for autorules."""

from pathlib import Path

import rich_click as click

from autorules import __version__
from autorules.config import DEFAULT_WORKERS, SUPPORTED_DISPLAYS
from autorules.controllers import AutoRulesCliController, CheckCommand
from autorules.orchestrator.worker import DEFAULT_MODEL
from autorules.report import SUPPORTED_REPORT_FORMATS

click.rich_click.USE_MARKDOWN = True
CHECK_CONTROLLER = AutoRulesCliController(echo=click.echo)

_EPILOG = """\
Examples:

- `autorules --workers=5 --model=openai/gpt-5-mini`
- `autorules --report=html --output=./reports/results.html`
- `autorules --provider=Cerebras --provider-sort=throughput`
- `OPENROUTER_API_KEY=xxx autorules`
"""


@click.command(epilog=_EPILOG)
@click.version_option(version=__version__, prog_name="autorules")
@click.option(
    "-w",
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help=f"Number of parallel workers. [default: {DEFAULT_WORKERS}, env AUTORULES_WORKERS]",
)
@click.option(
    "-r",
    "--report",
    "report_format",
    type=click.Choice(SUPPORTED_REPORT_FORMATS, case_sensitive=False),
    default=None,
    help="Report format. [default: html]",
)
@click.option(
    "-m",
    "--model",
    default=None,
    help=f"AI model to use. [default: {DEFAULT_MODEL}, env AUTORULES_MODEL]",
)
@click.option(
    "-k",
    "--api-key",
    default=None,
    help="OpenRouter API key (or set OPENROUTER_API_KEY env var).",
)
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Output path for report. [default: autorules-report.html]",
)
@click.option(
    "--provider",
    default=None,
    help="Filter to only use specific provider (e.g., Cerebras).",
)
@click.option(
    "--provider-sort",
    default=None,
    help="Sort providers by method: price or throughput.",
)
@click.option(
    "--root",
    "root_dir",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    help="Project root to scan. [default: current directory]",
)
@click.option(
    "--display",
    type=click.Choice(SUPPORTED_DISPLAYS, case_sensitive=False),
    default=None,
    help="Progress display: live terminal view, plain log lines, or none. [default: live]",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level for diagnostics. [default: WARNING, env AUTORULES_LOG_LEVEL]",
)
def autorules(  # noqa: PLR0913
    workers: int | None,
    report_format: str | None,
    model: str | None,
    api_key: str | None,
    output_path: Path | None,
    provider: str | None,
    provider_sort: str | None,
    root_dir: Path | None,
    display: str | None,
    log_level: str | None,
) -> None:
    """AutoRules AI - automated code quality checking with AI.

    Finds every `autorules/` folder in the project, checks each matching file
    against each rule, summarizes each rule, and writes a report.  Exits with
    status 1 if any check failed.
    """

    result = CHECK_CONTROLLER.check(
        CheckCommand(
            workers=workers,
            report_format=report_format,
            model=model,
            api_key=api_key,
            output_path=output_path,
            provider=provider,
            provider_sort=provider_sort,
            root_dir=root_dir,
            display=display,
            log_level=log_level,
        ),
    )
    if result.error is not None:
        raise click.ClickException(result.error)
    _emit_lines(result.lines)
    if result.exit_code:
        raise SystemExit(result.exit_code)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    autorules()
