"""
Version control system (VCS) integration.

This package contains the client for interacting with Git repositories.
It exposes methods for detecting repository roots, listing pending
changes, reading diffs, staging, committing, and pushing.
"""

from .git_client import GitClient, GitError, RepositoryStatus  # noqa: F401
