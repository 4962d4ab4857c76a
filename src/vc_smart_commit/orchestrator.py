"""
Smart-commit orchestration.

The :class:`CommitOrchestrator` runs the whole flow for one working
tree: resolve the configuration, collect pending changes, group them,
compose a commit unit per group, then stage and commit each unit on its
own. A unit that fails to stage or commit is recorded and skipped; the
remaining units are still committed, and nothing already committed is
undone. An optional push follows when at least one commit succeeded.

Every public method returns an :class:`OperationResult` and never raises.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from vc_smart_commit.commit.composer import CommitComposer, DescriptionStrategy
from vc_smart_commit.config.loader import COMMIT_STYLES, ConfigError, ConfigResolver, GitConfig
from vc_smart_commit.diff.change_collector import collect_changes
from vc_smart_commit.errors import OperationResult, error_result
from vc_smart_commit.grouping.group_model import CommitUnit
from vc_smart_commit.grouping.grouper import Grouper, group_by_category
from vc_smart_commit.vcs.git_client import GitClient, GitError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


PathLike = Union[str, Path]


@dataclass
class UnitOutcome:
    """Result of committing one unit."""

    unit: CommitUnit
    success: bool
    commit_sha: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.unit.message,
            "files": list(self.unit.files),
            "success": self.success,
            "commit": self.commit_sha,
            "error": self.error,
        }


@dataclass
class SmartCommitResult:
    """Summary of one orchestration run."""

    commit_units: List[CommitUnit] = field(default_factory=list)
    total_files: int = 0
    analysis_time_ms: int = 0
    commits_created: int = 0
    pushed: bool = False
    outcomes: List[UnitOutcome] = field(default_factory=list)

    @property
    def commits(self) -> List[str]:
        return [outcome.commit_sha for outcome in self.outcomes if outcome.success and outcome.commit_sha]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commitUnits": [unit.to_dict() for unit in self.commit_units],
            "totalFiles": self.total_files,
            "analysisTimeMs": self.analysis_time_ms,
            "commitsCreated": self.commits_created,
            "pushed": self.pushed,
            "commits": self.commits,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class CommitOrchestrator:
    """Run smart commits and related operations against Git working trees.

    Parameters
    ----------
    resolver : ConfigResolver, optional
        Configuration resolver owning the per-path cache. A fresh one is
        created when omitted.
    client_factory : callable, optional
        Builds the VCS client for a repository root. Defaults to
        :class:`GitClient`.
    grouper : callable, optional
        Grouping strategy, :func:`group_by_category` by default.
    describe : callable, optional
        Description strategy handed to the :class:`CommitComposer`.
    default_repo_path : path, optional
        Repository used when an operation gets no explicit path; the
        current directory otherwise.
    """

    def __init__(
        self,
        resolver: Optional[ConfigResolver] = None,
        client_factory: Callable[[Path], Any] = GitClient,
        grouper: Grouper = group_by_category,
        describe: Optional[DescriptionStrategy] = None,
        default_repo_path: Optional[PathLike] = None,
    ) -> None:
        self.resolver = resolver if resolver is not None else ConfigResolver()
        self.client_factory = client_factory
        self.grouper = grouper
        self.describe = describe
        self.default_repo_path = default_repo_path
        self._clients: Dict[str, Any] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Repository helpers
    # ------------------------------------------------------------------
    def resolve_repo_path(self, repo_path: Optional[PathLike] = None) -> Path:
        if repo_path is not None:
            return Path(repo_path).resolve()
        if self.default_repo_path is not None:
            return Path(self.default_repo_path).resolve()
        return Path.cwd().resolve()

    def _repository(self, repo_path: Optional[PathLike]) -> Tuple[Any, Path]:
        path = self._require_repository(repo_path)
        key = str(path)
        if key not in self._clients:
            self._clients[key] = self.client_factory(path)
        return self._clients[key], path

    def _require_repository(self, repo_path: Optional[PathLike]) -> Path:
        path = self.resolve_repo_path(repo_path)
        if not GitClient.is_repo(path):
            raise GitError(f"Not a git repository: {path}")
        return path

    @contextmanager
    def _serialized(self, path: Path) -> Iterator[None]:
        """Allow one in-flight operation per working tree."""
        with self._locks_guard:
            lock = self._locks.setdefault(str(path), threading.Lock())
        with lock:
            yield

    def _effective_config(self, path: Path, commit_style: Optional[str]) -> GitConfig:
        config = self.resolver.resolve(path)
        if commit_style:
            if commit_style not in COMMIT_STYLES:
                raise ConfigError(
                    f"Invalid commit style '{commit_style}'; expected one of {', '.join(COMMIT_STYLES)}"
                )
            # The cached config stays untouched.
            config = dataclasses.replace(config, commit_style=commit_style)
        return config

    def _plan(self, client: Any, config: GitConfig, status: Any = None) -> List[CommitUnit]:
        changes = collect_changes(client, config, status=status)
        if not changes:
            return []
        groups = self.grouper(changes)
        composer = CommitComposer(config, describe=self.describe)
        return composer.compose_all(groups)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def smart_commit(
        self,
        commit_style: Optional[str] = None,
        auto_push: Optional[bool] = None,
        repo_path: Optional[PathLike] = None,
    ) -> OperationResult:
        """Analyze pending changes and commit them as logical units.

        Parameters
        ----------
        commit_style : str, optional
            ``conventional`` or ``simple``; overrides the resolved config
            for this run only.
        auto_push : bool, optional
            Push after committing. ``None`` uses the configured
            ``autoPush`` value.
        repo_path : path, optional
            Working tree to operate on.
        """
        start = time.monotonic()
        try:
            client, path = self._repository(repo_path)
            with self._serialized(path):
                return self._smart_commit(client, path, commit_style, auto_push, start)
        except Exception as exc:
            logger.error("Smart commit failed: %s", exc)
            return error_result(exc, "smart_commit")

    def _smart_commit(
        self,
        client: Any,
        path: Path,
        commit_style: Optional[str],
        auto_push: Optional[bool],
        start: float,
    ) -> OperationResult:
        config = self._effective_config(path, commit_style)
        push_requested = config.auto_push if auto_push is None else auto_push

        status = client.get_status()
        if status.is_clean():
            result = SmartCommitResult(analysis_time_ms=_elapsed_ms(start))
            return OperationResult(True, "No changes to commit", data=result.to_dict())

        units = self._plan(client, config, status)
        if not units:
            result = SmartCommitResult(analysis_time_ms=_elapsed_ms(start))
            return OperationResult(True, "No valid changes found for commit", data=result.to_dict())

        outcomes = [self._commit_unit(client, unit, status.renamed_from) for unit in units]
        commits_created = sum(1 for outcome in outcomes if outcome.success)

        pushed = False
        if push_requested and commits_created > 0:
            try:
                client.push(config.remote_name)
                pushed = True
            except Exception as exc:
                logger.warning("Auto-push failed: %s", exc)

        result = SmartCommitResult(
            commit_units=units,
            total_files=sum(len(unit.files) for unit in units),
            analysis_time_ms=_elapsed_ms(start),
            commits_created=commits_created,
            pushed=pushed,
            outcomes=outcomes,
        )
        message = f"Created {commits_created} commit(s) from {result.total_files} file(s)"
        if pushed:
            message += " and pushed to remote"
        return OperationResult(True, message, data=result.to_dict())

    @staticmethod
    def _commit_unit(client: Any, unit: CommitUnit, renamed_from: Dict[str, str]) -> UnitOutcome:
        # A staged rename only reaches the commit together with its old path.
        pathspec = list(unit.files)
        for path in unit.files:
            origin = renamed_from.get(path)
            if origin and origin not in pathspec:
                pathspec.append(origin)
        try:
            client.stage_files(unit.files)
            sha = client.commit(unit.full_message, pathspec)
        except Exception as exc:
            logger.warning("Failed to commit unit for files %s: %s", ", ".join(unit.files), exc)
            return UnitOutcome(unit, success=False, error=str(exc))
        logger.info("Committed %s (%d file(s))", unit.message, len(unit.files))
        return UnitOutcome(unit, success=True, commit_sha=sha)

    def analyze_changes(
        self,
        commit_style: Optional[str] = None,
        repo_path: Optional[PathLike] = None,
    ) -> OperationResult:
        """Plan commit units without touching the index."""
        start = time.monotonic()
        try:
            client, path = self._repository(repo_path)
            with self._serialized(path):
                config = self._effective_config(path, commit_style)
                units = self._plan(client, config)
        except Exception as exc:
            return error_result(exc, "analyze_changes")
        result = SmartCommitResult(
            commit_units=units,
            total_files=sum(len(unit.files) for unit in units),
            analysis_time_ms=_elapsed_ms(start),
        )
        return OperationResult(
            True,
            f"Planned {len(units)} commit(s) from {result.total_files} file(s)",
            data=result.to_dict(),
        )

    def get_status(self, repo_path: Optional[PathLike] = None) -> OperationResult:
        """Describe the working tree's pending changes."""
        try:
            client, path = self._repository(repo_path)
            status = client.get_status()
        except Exception as exc:
            return error_result(exc, "get_status")
        context = {
            "path": str(path),
            "currentBranch": status.current_branch,
            "isDirty": not status.is_clean(),
            "stagedFiles": list(status.staged),
            "unstagedFiles": list(status.modified) + list(status.deleted),
            "untrackedFiles": list(status.untracked),
        }
        return OperationResult(True, f"Repository status retrieved for {path}", data={"status": context})

    def get_config(self, repo_path: Optional[PathLike] = None) -> GitConfig:
        """Return the resolved configuration for a repository."""
        return self.resolver.resolve(self.resolve_repo_path(repo_path))

    def save_config(self, config: GitConfig, repo_path: Optional[PathLike] = None) -> OperationResult:
        """Persist ``config`` as the repository configuration."""
        try:
            saved = self.resolver.save(config, self._require_repository(repo_path))
        except Exception as exc:
            return error_result(exc, "save_config")
        return OperationResult(True, "Configuration saved successfully", data={"config": saved.to_dict()})

    def save_repo_config(self, values: Dict[str, Any], repo_path: Optional[PathLike] = None) -> OperationResult:
        """Merge camelCase ``values`` into the repository configuration file."""
        try:
            path = self._require_repository(repo_path)
            merged = self.resolver.save_partial(values, path)
        except Exception as exc:
            return error_result(exc, "save_repo_config")
        return OperationResult(True, "Configuration saved successfully", data={"config": merged})

    def save_global_config(self, values: Dict[str, Any]) -> OperationResult:
        """Merge camelCase ``values`` into the global configuration."""
        try:
            merged = self.resolver.save_global(values)
        except Exception as exc:
            return error_result(exc, "save_global_config")
        return OperationResult(True, "Global configuration saved successfully", data={"config": merged})
