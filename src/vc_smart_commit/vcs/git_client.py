"""
Git client implementation for vc_smart_commit.

This module wraps the Git operations required by the commit engine:
status, per-file diff, staging, committing, and pushing. It is
intentionally minimal. All subprocess calls go through
:meth:`GitClient._run` so that unit tests can mock them easily.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


@dataclass
class RepositoryStatus:
    """Snapshot of ``git status`` for a working tree.

    Attributes
    ----------
    current_branch : str
        Name of the checked out branch, or ``HEAD`` when detached.
    staged : Dict[str, str]
        Paths with index changes mapped to their index status letter
        (``A``, ``M``, ``D``, ``R`` ...), in status order.
    modified : List[str]
        Paths modified in the working tree but not staged.
    deleted : List[str]
        Paths deleted from the working tree but not staged.
    untracked : List[str]
        Untracked paths, expanded to individual files.
    renamed_from : Dict[str, str]
        Staged renames, new path mapped to the path it was renamed from.
    """

    current_branch: str = "HEAD"
    staged: Dict[str, str] = field(default_factory=dict)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)
    renamed_from: Dict[str, str] = field(default_factory=dict)

    def is_clean(self) -> bool:
        return not (self.staged or self.modified or self.deleted or self.untracked)


def parse_porcelain(output: str) -> RepositoryStatus:
    """Parse ``git status --porcelain -z`` output.

    Entries are NUL separated. Renames and copies are followed by an
    extra entry holding the original path; for renames it is kept in
    ``renamed_from``.
    """
    status = RepositoryStatus()
    entries = output.split("\0")
    index = 0
    while index < len(entries):
        entry = entries[index]
        index += 1
        # XY + space + path
        if len(entry) < 4:
            continue
        x, y, path = entry[0], entry[1], entry[3:]
        if x in "RC":
            if x == "R" and index < len(entries):
                status.renamed_from[path] = entries[index]
            index += 1
        if x == "?" and y == "?":
            status.untracked.append(path)
            continue
        if x == "!":
            continue
        if x not in " ?":
            status.staged[path] = x
        if y == "M":
            status.modified.append(path)
        elif y == "D":
            status.deleted.append(path)
    return status


class GitClient:
    """Client for interacting with a Git repository.

    Parameters
    ----------
    repo_root : Path
        Root of the working tree.
    timeout : float, optional
        Deadline in seconds applied to every Git invocation.
    """

    def __init__(self, repo_root: Path, timeout: Optional[float] = None) -> None:
        self.repo_root = Path(repo_root)
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def is_repo(path: Path) -> bool:
        """Return True if the given path is the root of a Git repository."""
        return (Path(path) / ".git").exists()

    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = Path(start).resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command cannot be started, times out, or exits with a
            non-zero status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            logger.error("Git command timed out after %ss: %s", self.timeout, " ".join(full_cmd))
            raise GitError(f"Git command timed out after {self.timeout}s: {' '.join(full_cmd)}") from exc
        except OSError as exc:
            logger.error("Failed to execute Git: %s", exc)
            raise GitError(f"Failed to execute git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Status and change detection
    # ------------------------------------------------------------------
    def get_status(self) -> RepositoryStatus:
        """Return the staged, unstaged, and untracked paths.

        Raises
        ------
        GitError
            If the git status command fails.
        """
        result = self._run(["status", "--porcelain", "-z", "--untracked-files=all"], check=True)
        status = parse_porcelain(result.stdout)
        status.current_branch = self.get_current_branch()
        return status

    def get_diff(self, file_path: str, staged: bool = False) -> str:
        """Return the unified diff of one file.

        Staged changes are diffed against HEAD, unstaged ones against
        the index.
        """
        args = ["diff"]
        if staged:
            args.append("--cached")
        args.extend(["--", file_path])
        return self._run(args, check=True).stdout

    def get_current_branch(self) -> str:
        """Get the name of the current branch.

        A repository without commits still reports the branch HEAD
        points to.
        """
        result = self._run(["symbolic-ref", "--short", "-q", "HEAD"], check=False)
        branch = result.stdout.strip()
        return branch or "HEAD"

    # ------------------------------------------------------------------
    # Staging, committing, pushing
    # ------------------------------------------------------------------
    def stage_files(self, files: Sequence[str]) -> None:
        """Stage the given files for commit.

        For deleted files the removal is staged with ``git rm``;
        otherwise ``git add`` is used.
        """
        for file in files:
            abs_path = self.repo_root / file
            if abs_path.exists():
                self._run(["add", "--", file], check=True)
            else:
                self._run(["rm", "--cached", "--ignore-unmatch", "--", file], check=True)

    def commit(self, message: str, files: Optional[Sequence[str]] = None) -> str:
        """Create a commit and return its hash.

        When ``files`` is given only those paths are committed, leaving
        anything else in the index untouched.

        Raises
        ------
        GitError
            If the commit fails.
        """
        if not message.strip():
            raise GitError("Commit message cannot be empty")
        args = ["commit", "-m", message]
        if files:
            args.append("--")
            args.extend(files)
        self._run(args, check=True)
        return self._run(["rev-parse", "HEAD"], check=True).stdout.strip()

    def push(self, remote: str = "origin", branch: Optional[str] = None) -> None:
        """Push ``branch`` (default: the current branch) to ``remote``.

        Raises
        ------
        GitError
            If no branch can be determined or pushing fails.
        """
        if branch is None:
            branch = self.get_current_branch()
            if branch == "HEAD":
                raise GitError("No current branch found and no branch specified")
        self._run(["push", remote, branch], check=True)
