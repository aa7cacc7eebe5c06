"""Prompt templates for file checks and rule summaries."""

from __future__ import annotations

PASS_SENTINEL = "This passes your criteria"

CHECK_PROMPT = """\
FILENAME: {relative_path}
CONTENT: application/text
---
{content}
---

You are part of a system that is being asked to check every single file in a project a question.

You have been chosen to analyse `{relative_path}`.

The criteria you are to assess the file on is:

{include_block}> {criteria}

Your response will not get directly sent to the user, but instead will be combined with the \
responses of every other files generated.

So please keep your answer short. If this file does not raise any concerns/problems that the \
users has asked, then just return "{sentinel}".

If there are causes for concern, list exactly what part failed and why you \
concluded that it failed."""

INCLUDE_BLOCK = """\
File: {include_name}
Content:
```
{include_content}
```

---

"""

SUMMARY_PROMPT = """\
You are reviewing the results of an automated code quality check.

Rule: "{title}"
Criteria: {criteria}

Results from {result_count} files:
{results_text}

Please provide a summary of the overall findings for this rule. Focus on the findings, the facts. \
It's not your job to solve or suggest fixes.

Write it in markdown.
"""

SUMMARY_RESULT_ENTRY = "File: {file}\nStatus: {status}\nResponse: {response}\n"


def build_check_prompt(
    *,
    relative_path: str,
    content: str,
    criteria: str,
    include_name: str | None = None,
    include_content: str | None = None,
) -> str:
    """Render the per-file check prompt."""

    include_block = ""
    if include_name is not None and include_content is not None:
        include_block = INCLUDE_BLOCK.format(
            include_name=include_name,
            include_content=include_content,
        )
    return CHECK_PROMPT.format(
        relative_path=relative_path,
        content=content,
        include_block=include_block,
        criteria=criteria,
        sentinel=PASS_SENTINEL,
    )
