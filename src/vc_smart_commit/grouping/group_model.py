"""
Data models for change analysis and commit grouping.

A :class:`FileChange` describes one pending modification in the working
tree. A :class:`CommitUnit` represents a collection of related changes
that should be committed together, with its Conventional Commit type,
scope, description, and the final message text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class FileStatus(str, Enum):
    """Pending state of a single file."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    UNTRACKED = "untracked"


class CommitType(str, Enum):
    """Conventional Commit types produced by the composer."""

    FEAT = "feat"
    FIX = "fix"
    DOCS = "docs"
    STYLE = "style"
    REFACTOR = "refactor"
    TEST = "test"
    CHORE = "chore"


@dataclass(frozen=True)
class FileChange:
    """Representation of a single pending file change.

    Attributes
    ----------
    path : str
        Path relative to the repository root, ``/`` separated.
    status : FileStatus
        Kind of change.
    content_diff : str
        Unified diff for modified files, or a one-line summary for added
        and deleted files.
    is_staged : bool
        Whether the change was already in the index when collected.
    """

    path: str
    status: FileStatus
    content_diff: str = ""
    is_staged: bool = False


@dataclass
class CommitUnit:
    """Representation of one planned commit.

    Attributes
    ----------
    type : CommitType
        The Conventional Commit type (feat, docs, chore, ...).
    scope : str
        Scope shown between parentheses in conventional messages.
    description : str
        Human-readable summary of the change.
    files : List[str]
        Files included in the commit.
    message : str
        One-line commit subject.
    body : str
        Optional multi-line body, empty for small commits.
    """

    type: CommitType
    scope: str
    description: str
    files: List[str]
    message: str
    body: str = field(default="")

    @property
    def full_message(self) -> str:
        """The literal commit message: subject, blank line, body."""
        if self.body:
            return f"{self.message}\n\n{self.body}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "scope": self.scope,
            "description": self.description,
            "files": list(self.files),
            "message": self.message,
            "body": self.body,
        }
