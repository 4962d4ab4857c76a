"""
Error categorization and result envelopes.

Every public engine operation returns an :class:`OperationResult`.
Failures caught at the operation boundary are categorized by
:func:`categorize_error` so that callers get a category, a suggestion,
and a recoverability flag along with the raw message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from vc_smart_commit.config.loader import ConfigError


REPOSITORY = "repository"
NETWORK = "network"
CONFLICT = "conflict"
PERMISSION = "permission"
CONFIG = "config"

# Checked in order; the first category with a matching keyword wins.
CATEGORY_KEYWORDS = (
    (REPOSITORY, ("not a git repository", "does not exist")),
    (NETWORK, ("network", "remote", "could not resolve host", "connection")),
    (CONFLICT, ("conflict", "merge")),
    (PERMISSION, ("permission", "access", "denied")),
    (CONFIG, ("config", "json")),
)

SUGGESTIONS = {
    REPOSITORY: "Initialize a git repository with `git init` or navigate to an existing repository",
    NETWORK: "Check your internet connection and remote repository access",
    CONFLICT: "Resolve merge conflicts before continuing",
    PERMISSION: "Check file permissions and repository access rights",
    CONFIG: "Check the repository and global configuration files for invalid values",
}


@dataclass
class GitErrorInfo:
    """Structured description of a failed operation."""

    category: str
    code: str
    message: str
    suggestion: Optional[str] = None
    recoverable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "code": self.code,
            "suggestion": self.suggestion,
            "recoverable": self.recoverable,
        }


@dataclass
class OperationResult:
    """Uniform envelope returned by every engine-facing call."""

    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            result["error"] = self.error
        return result


def categorize_error(exc: BaseException, operation: str) -> GitErrorInfo:
    """Categorize an exception by type, then by keywords in its message."""
    message = str(exc) or exc.__class__.__name__
    code = operation.upper()
    if isinstance(exc, ConfigError):
        return GitErrorInfo(CONFIG, code, message, SUGGESTIONS[CONFIG])

    lowered = message.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return GitErrorInfo(category, code, message, SUGGESTIONS[category])
    return GitErrorInfo(REPOSITORY, code, message, SUGGESTIONS[REPOSITORY])


def error_result(exc: BaseException, operation: str) -> OperationResult:
    """Convert an exception caught at an operation boundary into a result."""
    info = categorize_error(exc, operation)
    return OperationResult(
        success=False,
        message=f"Git operation '{operation}' failed",
        data=info.to_dict(),
        error=info.message,
    )
