"""
Utilities for collecting pending changes and their diffs.

The :mod:`vc_smart_commit.diff.change_collector` module turns the status
of a working tree into a list of file changes.
"""

from .change_collector import collect_changes, is_safe_path  # noqa: F401
