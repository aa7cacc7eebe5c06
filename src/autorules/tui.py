"""Live terminal view of a check run."""

from __future__ import annotations

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from autorules.orchestrator.models import RunStatus
from autorules.orchestrator.progress import ProgressState, RuleProgress

_STATUS_STYLES = {
    RunStatus.SCANNING: "yellow",
    RunStatus.PROCESSING: "yellow",
    RunStatus.COMPLETED: "green",
    RunStatus.FAILED: "red",
}


class LiveRenderer:
    """Redraw the progress view in place on every state change."""

    def __init__(self, console: Console | None = None, *, refresh_per_second: float = 8) -> None:
        self._console = console or Console(stderr=True)
        self._live = Live(
            console=self._console,
            refresh_per_second=refresh_per_second,
            transient=False,
            auto_refresh=False,
        )
        self._started = False

    @property
    def console(self) -> Console:
        return self._console

    def start(self) -> None:
        if not self._started:
            self._live.start()
            self._started = True

    def stop(self) -> None:
        if self._started:
            self._live.stop()
            self._started = False

    def render(self, state: ProgressState) -> None:
        self.start()
        self._live.update(build_view(state), refresh=True)

    def __enter__(self) -> LiveRenderer:
        self.start()
        return self

    def __exit__(self, *_: object) -> None:
        self.stop()


def build_view(state: ProgressState) -> RenderableType:
    """Build the renderable for the current state."""

    eta = state.eta_seconds()
    time_line = Text.assemble(("Time: ", "bold"), (f"{state.elapsed_seconds()}s", "cyan"))
    if eta > 0 and state.status == RunStatus.PROCESSING:
        time_line.append(f" ({eta}s remaining)", style="bright_black")

    header = Group(
        Text.assemble(
            ("Status: ", "bold"),
            (state.status.value, _STATUS_STYLES.get(state.status, "white")),
        ),
        time_line,
        Text.assemble(
            ("Workers: ", "bold"),
            (str(state.workers), "cyan"),
            " | ",
            ("Model: ", "bold"),
            (state.model, "magenta"),
        ),
        Text.assemble(
            ("Tokens: ", "bold"),
            (f"{state.total_tokens:,}", "cyan"),
            " | ",
            ("Cost: ", "bold"),
            (f"${state.total_cost:.6f}", "green"),
        ),
    )

    table = Table(box=None, show_header=False, padding=(0, 1), expand=False)
    table.add_column("index", justify="right", style="bold")
    table.add_column("rule")
    for index, progress in enumerate(state.rule_progress(), start=1):
        table.add_row(f"{index}.", _rule_block(progress))

    return Panel(
        Group(header, Text(""), Text("Rules:", style="bold white"), table),
        title="[bold cyan]AutoRules AI[/] [bright_black]- Automated Code Quality Checks[/]",
        border_style="cyan",
    )


def _rule_block(progress: RuleProgress) -> RenderableType:
    title_style = "red" if progress.failures else "green"
    counts = Text.assemble(
        (f" {progress.percentage}%", "cyan"),
        (f" ({progress.completed}/{progress.expected} files", "bright_black"),
    )
    if progress.failures:
        counts.append(f" | {progress.failures} failures", style="red")
    counts.append(")", style="bright_black")

    bar_line = Table.grid()
    bar_line.add_column(width=30)
    bar_line.add_column()
    bar_line.add_row(
        ProgressBar(
            total=max(progress.expected, 1),
            completed=progress.completed if progress.expected else 1,
            width=30,
        ),
        counts,
    )

    lines: list[RenderableType] = [
        Text(progress.rule.title, style=title_style),
        Text(str(progress.rule.source_path), style="bright_black"),
        bar_line,
    ]
    if progress.has_summary:
        lines.append(Text("✓ Summary generated", style="green"))
    elif progress.awaiting_summary:
        lines.append(Text("⟳ Generating summary...", style="yellow"))
    return Group(*lines)
