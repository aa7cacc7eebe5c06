"""HTML report for a finished check run."""

from __future__ import annotations

import html
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import markdown

from autorules.orchestrator.models import CheckResult, RuleSummary
from autorules.scanner import AutoRule

logger = logging.getLogger(__name__)

SUPPORTED_REPORT_FORMATS = ("html",)


@dataclass(slots=True)
class ReportOptions:
    """Run metadata shown in the report header."""

    model: str
    workers: int
    duration_seconds: int
    generated_at: datetime | None = None


@dataclass(slots=True)
class FileGroup:
    """All results for one checked file."""

    file: str
    results: list[CheckResult]

    @property
    def has_failed(self) -> bool:
        return any(not result.passed for result in self.results)


def group_results_by_file(results: Sequence[CheckResult]) -> list[FileGroup]:
    groups: dict[str, FileGroup] = {}
    for result in results:
        group = groups.get(result.file)
        if group is None:
            group = groups[result.file] = FileGroup(file=result.file, results=[])
        group.results.append(result)
    return list(groups.values())


def render_markdown(text: str) -> str:
    """Render model-written markdown to HTML."""

    return markdown.markdown(text, extensions=["fenced_code", "tables", "sane_lists"])


def render_html_report(
    results: Sequence[CheckResult],
    rules: Sequence[AutoRule],
    summaries: Sequence[RuleSummary],
    options: ReportOptions,
) -> str:
    """Build the complete standalone HTML document."""

    grouped = group_results_by_file(results)
    total_failures = sum(1 for result in results if not result.passed)
    total_passed = len(results) - total_failures
    total_tokens = sum(result.tokens or 0 for result in results)
    total_cost = sum(result.cost or 0.0 for result in results)
    generated_at = options.generated_at or datetime.now(tz=UTC)

    meta = " |\n        ".join(
        [
            f"Generated: {_e(generated_at.strftime('%Y-%m-%d %H:%M:%S %Z'))}",
            f"Model: {_e(options.model)}",
            f"Workers: {options.workers}",
            f"Duration: {options.duration_seconds}s",
            f"Tokens: {total_tokens:,}",
            f"Cost: ${total_cost:.4f}",
        ],
    )
    stats = "".join(
        _stat(value, label, css)
        for value, label, css in (
            (len(grouped), "Total Files", ""),
            (total_passed, "Passed", " passed"),
            (total_failures, "Failed", " failed"),
            (len(rules), "Rules", ""),
        )
    )
    summary_rows = "".join(_summary_rows(index, summary) for index, summary in enumerate(summaries))
    file_rows = "".join(_file_rows(index, group) for index, group in enumerate(grouped))

    return _DOCUMENT.format(
        styles=_STYLES,
        meta=meta,
        stats=stats,
        summary_rows=summary_rows,
        file_rows=file_rows,
        script=_SCRIPT,
    )


def write_html_report(  # noqa: PLR0913
    results: Sequence[CheckResult],
    rules: Sequence[AutoRule],
    summaries: Sequence[RuleSummary],
    output_path: Path,
    options: ReportOptions,
) -> Path:
    """Render and write the report, creating parent directories as needed."""

    document = render_html_report(results, rules, summaries, options)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(document, "utf-8")
    logger.info("Report written: %s (%d bytes)", output_path, len(document))
    return output_path


def _e(value: str) -> str:
    return html.escape(value, quote=True)


def _badge(failed: bool) -> str:
    return (
        '<span class="badge failed">FAILED</span>'
        if failed
        else '<span class="badge passed">PASSED</span>'
    )


def _stat(value: int, label: str, css: str) -> str:
    return (
        f'\n        <div class="stat{css}">'
        f'<div class="stat-value">{value}</div>'
        f'<div class="stat-label">{label}</div></div>'
    )


def _summary_rows(index: int, summary: RuleSummary) -> str:
    return f"""
          <tr class="file-row" id="summary-row-{index}" onclick="toggleSummary({index})">
            <td class="expand-cell"><span class="expand-arrow">&#9654;</span></td>
            <td><strong>{_e(summary.rule.title)}</strong></td>
            <td>{_badge(summary.has_failures)}</td>
            <td>{summary.passed_count}/{summary.total_checked} passed</td>
          </tr>
          <tr class="details-row" id="summary-details-{index}">
            <td colspan="4" class="details-cell">
              <div class="details-content">
                <div class="rule-response">{render_markdown(summary.summary_text)}</div>
              </div>
            </td>
          </tr>"""


def _file_rows(index: int, group: FileGroup) -> str:
    checks = "".join(_rule_check(result) for result in group.results)
    plural = "s" if len(group.results) > 1 else ""
    return f"""
          <tr class="file-row" id="row-{index}" onclick="toggleRow({index})">
            <td class="expand-cell"><span class="expand-arrow">&#9654;</span></td>
            <td><code>{_e(group.file)}</code></td>
            <td>{_badge(group.has_failed)}</td>
            <td>{len(group.results)} rule{plural}</td>
          </tr>
          <tr class="details-row" id="details-{index}">
            <td colspan="4" class="details-cell">
              <div class="details-content">{checks}
              </div>
            </td>
          </tr>"""


def _rule_check(result: CheckResult) -> str:
    body = result.response or result.error or "No response"
    meta_parts: list[str] = []
    if result.tokens:
        meta_parts.append(f"Tokens: {result.tokens:,}")
    if result.cost:
        meta_parts.append(f"Cost: ${result.cost:.6f}")
    meta = f'<div class="rule-meta">{" | ".join(meta_parts)}</div>' if meta_parts else ""
    return f"""
                <div class="rule-check">
                  <div class="rule-header">
                    {_badge(not result.passed)}
                    <span class="rule-name">{_e(result.rule_title)}</span>
                  </div>
                  <div class="rule-response">{_e(body)}</div>
                  {meta}
                </div>"""


_STYLES = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu,
        Cantarell, sans-serif;
      line-height: 1.6; color: #333; background: #f5f5f5;
    }
    .container { width: 100%; padding: 20px; }
    h1, h2, h3 { margin-bottom: 15px; }
    h2 { margin: 30px 0 20px 0; }
    .dashboard {
      background: white; border-radius: 8px; padding: 30px; margin-bottom: 30px;
      box-shadow: 0 2px 4px rgba(0,0,0,0.1);
    }
    .stats {
      display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
      gap: 20px; margin-top: 20px;
    }
    .stat { background: #f9f9f9; padding: 20px; border-radius: 6px; text-align: center; }
    .stat-value { font-size: 2em; font-weight: bold; color: #2c3e50; }
    .stat-label { color: #7f8c8d; margin-top: 5px; }
    .stat.passed .stat-value { color: #27ae60; }
    .stat.failed .stat-value { color: #e74c3c; }
    .results-table {
      background: white; border-radius: 8px; overflow: hidden; margin-bottom: 30px;
      box-shadow: 0 2px 4px rgba(0,0,0,0.1);
    }
    table { width: 100%; border-collapse: collapse; }
    th { background: #34495e; color: white; padding: 15px; text-align: left; font-weight: 600; }
    td { padding: 15px; border-bottom: 1px solid #ecf0f1; }
    tbody tr { cursor: pointer; transition: background 0.2s; }
    tbody tr:hover { background: #f8f9fa; }
    .expand-cell { width: 40px; text-align: center; color: #7f8c8d; }
    .expand-arrow { display: inline-block; transition: transform 0.2s; }
    tr.file-row.expanded .expand-arrow { transform: rotate(90deg); }
    .details-row { display: none; }
    .details-row.visible { display: table-row; }
    .details-cell { padding: 0 !important; background: #f8f9fa; }
    .details-content { padding: 20px; }
    .badge {
      display: inline-block; padding: 4px 12px; border-radius: 12px;
      font-size: 0.85em; font-weight: 600;
    }
    .badge.passed { background: #d4edda; color: #155724; }
    .badge.failed { background: #f8d7da; color: #721c24; }
    .meta { color: #7f8c8d; font-size: 0.9em; margin-bottom: 20px; }
    .rule-check { padding: 20px; border-bottom: 1px solid #e1e8ed; }
    .rule-check:last-child { border-bottom: none; }
    .rule-header { display: flex; align-items: center; gap: 15px; margin-bottom: 15px; }
    .rule-name { font-weight: 600; font-size: 1.05em; color: #2c3e50; }
    .rule-response {
      background: white; padding: 15px; border-radius: 6px; font-size: 0.95em;
      line-height: 1.7; border: 1px solid #e1e8ed; white-space: pre-wrap;
    }
    .rule-response p { margin: 0 0 10px 0; }
    .rule-response ul, .rule-response ol { margin: 10px 0; padding-left: 25px; }
    .rule-response code {
      background: #f5f5f5; padding: 2px 6px; border-radius: 3px;
      font-family: 'Courier New', monospace; font-size: 0.9em;
    }
    .summary-table .rule-response { white-space: normal; }
    .rule-meta { font-size: 0.85em; color: #7f8c8d; margin-top: 10px; }
"""

_SCRIPT = """
    function toggle(rowId, detailsId) {
      document.getElementById(rowId).classList.toggle('expanded');
      document.getElementById(detailsId).classList.toggle('visible');
    }
    function toggleRow(index) { toggle('row-' + index, 'details-' + index); }
    function toggleSummary(index) { toggle('summary-row-' + index, 'summary-details-' + index); }
"""

_DOCUMENT = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>AutoRules Report</title>
  <style>{styles}</style>
</head>
<body>
  <div class="container">
    <div class="dashboard">
      <h1>AutoRules Report</h1>
      <div class="meta">
        {meta}
      </div>
      <div class="stats">{stats}
      </div>
    </div>

    <h2>Rule Summaries</h2>
    <div class="results-table summary-table">
      <table>
        <thead>
          <tr>
            <th style="width: 40px;"></th>
            <th>Rule</th>
            <th style="width: 120px;">Status</th>
            <th style="width: 150px;">Files Checked</th>
          </tr>
        </thead>
        <tbody>{summary_rows}
        </tbody>
      </table>
    </div>

    <h2>File Details</h2>
    <div class="results-table">
      <table>
        <thead>
          <tr>
            <th style="width: 40px;"></th>
            <th>File</th>
            <th style="width: 120px;">Status</th>
            <th style="width: 150px;">Rules Checked</th>
          </tr>
        </thead>
        <tbody>{file_rows}
        </tbody>
      </table>
    </div>
  </div>
  <script>{script}</script>
</body>
</html>
"""
