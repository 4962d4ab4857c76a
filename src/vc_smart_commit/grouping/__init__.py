"""
Grouping logic for commit units.

This package provides functionality to categorize changed files and
group them accordingly. See :mod:`vc_smart_commit.grouping.change_classifier`,
:mod:`vc_smart_commit.grouping.grouper` and
:mod:`vc_smart_commit.grouping.group_model` for details.
"""

from .change_classifier import categorize_file  # noqa: F401
from .group_model import CommitType, CommitUnit, FileChange, FileStatus  # noqa: F401
from .grouper import Grouper, group_by_category  # noqa: F401
