"""Discover autorules folders, parse rule files, and expand their file patterns."""

from __future__ import annotations

import fnmatch
import logging
import os
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

RULES_DIR_NAME = "autorules"
DEFAULT_RULE_TITLE = "Untitled Rule"
DEFAULT_FILE_PATTERN = "**/*"

_SKIPPED_DIR_NAMES = frozenset({"node_modules"})
_IGNORED_MATCH_PARTS = frozenset({"node_modules", RULES_DIR_NAME})
_FRONTMATTER = re.compile(r"^(.*?)---\n(.+)$", re.DOTALL)
_BRACE_GROUP = re.compile(r"\{([^{}]*,[^{}]*)\}")


class RuleFormatError(ValueError):
    """Rule file does not follow the `<frontmatter>---<criteria>` layout."""


@dataclass(frozen=True, slots=True)
class AutoRule:
    """One rule loaded from an autorules markdown file."""

    title: str
    file_pattern: str
    criteria: str
    source_path: Path
    include_path: str | None = None

    @property
    def include_file(self) -> Path | None:
        """Companion file, resolved relative to the rule file's folder."""

        if not self.include_path:
            return None
        return (self.source_path.parent / self.include_path).resolve()


@dataclass(frozen=True, slots=True)
class CheckItem:
    """One (file, rule) pair to check."""

    path: Path
    rule: AutoRule


@dataclass(slots=True)
class ScanResult:
    """Everything the check run needs from the project scan."""

    items: list[CheckItem] = field(default_factory=list)
    rules: list[AutoRule] = field(default_factory=list)
    expected_counts: dict[str, int] = field(default_factory=dict)


def parse_frontmatter(content: str) -> tuple[dict[str, str], str]:
    """Split rule file text into metadata and criteria body.

    The metadata block is everything before the first `---` line; each
    `key: value` line in it becomes one entry.
    """

    match = _FRONTMATTER.match(content.replace("\r\n", "\n"))
    if match is None:
        raise RuleFormatError(
            "Invalid autorule format. Expected frontmatter with title and files.",
        )

    frontmatter, body = match.groups()
    metadata: dict[str, str] = {}
    for line in frontmatter.strip().split("\n"):
        key, sep, value = line.partition(":")
        if sep and key.strip():
            metadata[key.strip()] = value.strip()
    return metadata, body.strip()


def find_rules_folders(root_dir: Path) -> list[Path]:
    """Return every `autorules` directory below ``root_dir``."""

    folders: list[Path] = []
    for current, dir_names, _ in os.walk(root_dir):
        dir_names.sort()
        descend: list[str] = []
        for name in dir_names:
            if name == RULES_DIR_NAME:
                folders.append(Path(current) / name)
            elif name not in _SKIPPED_DIR_NAMES and not name.startswith("."):
                descend.append(name)
        dir_names[:] = descend
    return folders


def load_rules(rules_folder: Path) -> list[AutoRule]:
    """Load each `*.md` file directly inside ``rules_folder`` as a rule."""

    rules: list[AutoRule] = []
    for rule_path in sorted(rules_folder.iterdir()):
        if not rule_path.is_file() or rule_path.suffix != ".md":
            continue
        try:
            metadata, body = parse_frontmatter(rule_path.read_text("utf-8"))
        except RuleFormatError as error:
            raise RuleFormatError(f"{rule_path}: {error}") from error
        rules.append(
            AutoRule(
                title=metadata.get("title") or DEFAULT_RULE_TITLE,
                file_pattern=metadata.get("files") or DEFAULT_FILE_PATTERN,
                criteria=body,
                source_path=rule_path,
                include_path=metadata.get("includes") or None,
            ),
        )
    return rules


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, innermost group first, keeping first-seen order."""

    match = _BRACE_GROUP.search(pattern)
    if match is None:
        return [pattern]
    expanded: list[str] = []
    for alternative in match.group(1).split(","):
        candidate = pattern[: match.start()] + alternative + pattern[match.end() :]
        for item in expand_braces(candidate):
            if item not in expanded:
                expanded.append(item)
    return expanded


def files_for_rule(rule: AutoRule, base_dir: Path) -> list[CheckItem]:
    """Expand the rule's glob pattern below ``base_dir``.

    Dot-files and anything under a dot-directory only match when the pattern
    names them with a leading dot.

    Raises:
        RuleFormatError: The pattern is absolute or otherwise not a relative glob.
    """

    matches: set[Path] = set()
    for pattern in expand_braces(rule.file_pattern):
        dot_segments = [part for part in PurePosixPath(pattern).parts if part.startswith(".")]
        try:
            for path in base_dir.glob(pattern):
                relative_parts = path.relative_to(base_dir).parts
                if not path.is_file():
                    continue
                if _IGNORED_MATCH_PARTS.intersection(relative_parts[:-1]):
                    continue
                if any(
                    part.startswith(".") and not _named_by(part, dot_segments)
                    for part in relative_parts
                ):
                    continue
                matches.add(path)
        except (NotImplementedError, ValueError) as error:
            raise RuleFormatError(
                f"{rule.source_path}: unsupported files pattern {rule.file_pattern!r}: {error}",
            ) from error
    return [CheckItem(path=path, rule=rule) for path in sorted(matches)]


def _named_by(part: str, dot_segments: list[str]) -> bool:
    return any(fnmatch.fnmatchcase(part, segment) for segment in dot_segments)


def scan_project(root_dir: Path) -> ScanResult:
    """Collect rules and (file, rule) pairs for the whole project tree."""

    result = ScanResult()
    for folder in find_rules_folders(root_dir):
        rules = load_rules(folder)
        result.rules.extend(rules)
        base_dir = folder.parent
        for rule in rules:
            result.items.extend(files_for_rule(rule, base_dir))

    title_counts = Counter(rule.title for rule in result.rules)
    for title, count in title_counts.items():
        if count > 1:
            logger.warning(
                "Rule title %r is used by %d rule files; their results are tracked together",
                title,
                count,
            )
    result.expected_counts = {title: 0 for title in title_counts}
    for item in result.items:
        result.expected_counts[item.rule.title] += 1

    logger.info(
        "Scan complete: rules=%d items=%d root=%s",
        len(result.rules),
        len(result.items),
        root_dir,
    )
    return result
