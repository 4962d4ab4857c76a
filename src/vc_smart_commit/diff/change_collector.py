"""
Change collection utilities.

This module enumerates the staged, unstaged, and untracked changes of a
working tree and turns each surviving path into a :class:`FileChange`
carrying its diff text. Unsafe paths and files larger than the
configured limit are skipped. A diff that cannot be obtained is
recorded as text instead of aborting the collection.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import List, Optional, Set

from vc_smart_commit.config.loader import GitConfig
from vc_smart_commit.grouping.group_model import FileChange, FileStatus
from vc_smart_commit.vcs.git_client import RepositoryStatus


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


STAGED_STATUSES = {"A": FileStatus.ADDED, "D": FileStatus.DELETED}


def is_safe_path(file_path: str) -> bool:
    """Return False for absolute paths and paths with a ``..`` segment."""
    if PurePosixPath(file_path).is_absolute() or PureWindowsPath(file_path).anchor:
        return False
    return ".." not in file_path.replace("\\", "/").split("/")


def _exceeds_size(full_path: Path, limit: int) -> bool:
    try:
        size = os.path.getsize(full_path)
    except OSError:
        # Deleted or unreadable files cannot be probed.
        return False
    if size > limit:
        logger.warning("Skipping large file: %s (%d bytes)", full_path, size)
        return True
    return False


def _build_change(
    client: object,
    repo_root: Path,
    file_path: str,
    status: FileStatus,
    is_staged: bool,
    config: GitConfig,
) -> Optional[FileChange]:
    if not is_safe_path(file_path):
        logger.warning("Skipping potentially unsafe file path: %s", file_path)
        return None
    if _exceeds_size(repo_root / file_path, config.max_file_size):
        return None

    if status is FileStatus.DELETED:
        diff = f"File deleted: {file_path}"
    elif status in (FileStatus.ADDED, FileStatus.UNTRACKED):
        diff = f"New file: {file_path}"
    else:
        try:
            diff = client.get_diff(file_path, staged=is_staged) or "No diff available"  # type: ignore[attr-defined]
        except Exception as exc:
            logger.debug("Could not read diff for %s: %s", file_path, exc)
            diff = f"Error getting diff: {exc}"
    return FileChange(path=file_path, status=status, content_diff=diff, is_staged=is_staged)


def collect_changes(
    client: object,
    config: GitConfig,
    status: Optional[RepositoryStatus] = None,
) -> List[FileChange]:
    """Collect pending changes of the client's working tree.

    Parameters
    ----------
    client : object
        The VCS client. Must implement ``get_status()``,
        ``get_diff(path, staged=...)`` and expose ``repo_root``.
    config : GitConfig
        Resolved configuration; ``max_file_size`` bounds the files kept.
    status : RepositoryStatus, optional
        A status snapshot to reuse instead of querying the client again.

    Returns
    -------
    List[FileChange]
        Staged changes first, then unstaged modifications and deletions,
        then untracked files. An empty list means nothing to commit.
    """
    if status is None:
        status = client.get_status()  # type: ignore[attr-defined]
    repo_root = Path(client.repo_root)  # type: ignore[attr-defined]

    candidates = []
    for path, code in status.staged.items():
        candidates.append((path, STAGED_STATUSES.get(code, FileStatus.MODIFIED), True))
    deleted = set(status.deleted)
    for path in list(status.modified) + list(status.deleted):
        candidates.append((path, FileStatus.DELETED if path in deleted else FileStatus.MODIFIED, False))
    for path in status.untracked:
        # New files are reported as additions.
        candidates.append((path, FileStatus.ADDED, False))

    changes: List[FileChange] = []
    seen: Set[str] = set()
    for path, file_status, is_staged in candidates:
        if path in seen:
            continue
        seen.add(path)
        change = _build_change(client, repo_root, path, file_status, is_staged, config)
        if change is not None:
            changes.append(change)
    logger.debug("Collected %d change(s) from %d candidate path(s)", len(changes), len(seen))
    return changes
