"""
Commit unit composition.

This module provides the :class:`CommitComposer` class, which turns a
group of related file changes into a :class:`CommitUnit`: a Conventional
Commit type derived from the file category, a scope taken from the
deepest directory shared by the files, a short description of what
happened to them, the one-line message in the configured style, and a
file listing body for larger commits.

The description can optionally be produced by a pluggable strategy (for
example an LLM). The deterministic description is always computed first
and used whenever the strategy fails.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Callable, Iterable, List, Optional, Sequence

from vc_smart_commit.config.loader import GitConfig
from vc_smart_commit.grouping.change_classifier import categorize_file
from vc_smart_commit.grouping.group_model import CommitType, CommitUnit, FileChange, FileStatus


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DescriptionStrategy = Callable[[Sequence[FileChange], str, str], str]

CATEGORY_TYPES = {
    "feat": CommitType.FEAT,
    "api": CommitType.FEAT,
    "service": CommitType.FEAT,
    "model": CommitType.FEAT,
    "docs": CommitType.DOCS,
    "test": CommitType.TEST,
    "config": CommitType.CHORE,
    "build": CommitType.CHORE,
    "style": CommitType.STYLE,
    "util": CommitType.REFACTOR,
    "misc": CommitType.CHORE,
}

CATEGORY_LABELS = {
    "docs": "documentation",
    "test": "tests",
    "config": "configuration",
    "build": "build system",
    "style": "styling",
    "api": "API endpoints",
    "service": "business logic",
    "model": "data models",
}

BODY_FILE_THRESHOLD = 3
STATUS_MARKERS = {FileStatus.ADDED: "+", FileStatus.UNTRACKED: "+", FileStatus.DELETED: "-"}


def category_to_commit_type(category: str) -> CommitType:
    """Map a file category to its commit type, ``chore`` when unknown."""
    return CATEGORY_TYPES.get(category, CommitType.CHORE)


def common_directory(paths: Sequence[str]) -> List[str]:
    """Return the leading directory segments shared by every path.

    The final (file name) segment of each path never takes part.
    """
    if not paths:
        return []
    split = [path.replace("\\", "/").split("/") for path in paths]
    if len(split) == 1:
        return split[0][:-1]
    common: List[str] = []
    shortest = min(len(parts) for parts in split)
    for i in range(shortest - 1):
        part = split[0][i]
        if all(parts[i] == part for parts in split):
            common.append(part)
        else:
            break
    return common


def _plural(count: int, verb: str) -> str:
    return f"{verb} {count} file{'s' if count != 1 else ''}"


def _action(status: FileStatus) -> str:
    if status in (FileStatus.ADDED, FileStatus.UNTRACKED):
        return "add"
    if status is FileStatus.DELETED:
        return "remove"
    return "update"


class CommitComposer:
    """Compose commit units from groups of file changes.

    Parameters
    ----------
    config : GitConfig
        Resolved configuration; ``commit_style`` selects the message format.
    categorize : callable, optional
        Path categorizer, :func:`categorize_file` by default.
    describe : callable, optional
        Description strategy called as ``describe(group, category,
        heuristic_description)``.
    """

    def __init__(
        self,
        config: GitConfig,
        categorize: Callable[[str], str] = categorize_file,
        describe: Optional[DescriptionStrategy] = None,
    ) -> None:
        self.config = config
        self.categorize = categorize
        self.describe = describe

    def compose_all(self, groups: Iterable[Sequence[FileChange]]) -> List[CommitUnit]:
        """Compose one unit per non-empty group, keeping group order."""
        return [self.compose(group) for group in groups if group]

    def compose(self, group: Sequence[FileChange]) -> CommitUnit:
        """Build the commit unit for one group of changes."""
        if not group:
            raise ValueError("Cannot compose a commit unit from an empty group")
        category = self.categorize(group[0].path)
        commit_type = category_to_commit_type(category)
        scope = self.determine_scope(group, category)
        description = self._description(group, category)
        return CommitUnit(
            type=commit_type,
            scope=scope,
            description=description,
            files=[change.path for change in group],
            message=self.format_message(commit_type, scope, description),
            body=self.generate_body(group),
        )

    def determine_scope(self, group: Sequence[FileChange], category: str) -> str:
        """Pick the deepest shared directory, falling back to the category."""
        common = common_directory([change.path for change in group])
        if common:
            # Parentheses would break the conventional subject.
            scope = common[-1].replace("(", "").replace(")", "").strip()
            if scope:
                return scope
        return "core" if category == "feat" else category

    def generate_description(self, group: Sequence[FileChange], category: str) -> str:
        """Describe the group deterministically."""
        if len(group) == 1:
            change = group[0]
            name = posixpath.basename(change.path.replace("\\", "/"))
            return f"{_action(change.status)} {name}"

        counts = {"add": 0, "update": 0, "remove": 0}
        for change in group:
            counts[_action(change.status)] += 1
        clauses = [_plural(count, verb) for verb, count in counts.items() if count]
        text = ", ".join(clauses)

        label = CATEGORY_LABELS.get(category)
        return f"{text} for {label}" if label else text

    def _description(self, group: Sequence[FileChange], category: str) -> str:
        heuristic = self.generate_description(group, category)
        if self.describe is None:
            return heuristic
        try:
            described = self.describe(group, category, heuristic)
        except Exception as exc:
            logger.warning("Description strategy failed for %s group: %s; using heuristic.", category, exc)
            return heuristic
        described = (described or "").strip()
        return described.splitlines()[0] if described else heuristic

    def format_message(self, commit_type: CommitType, scope: str, description: str) -> str:
        """Format the subject line in the configured style."""
        if self.config.commit_style == "conventional":
            return f"{commit_type.value}({scope}): {description}"
        return description[:1].upper() + description[1:]

    @staticmethod
    def generate_body(group: Sequence[FileChange]) -> str:
        """List the files of larger groups, empty otherwise."""
        if len(group) <= BODY_FILE_THRESHOLD:
            return ""
        lines = ["Files changed:"]
        for change in group:
            lines.append(f"  {STATUS_MARKERS.get(change.status, 'M')} {change.path}")
        return "\n".join(lines)
