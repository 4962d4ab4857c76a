"""
Grouping strategies that partition file changes into commit groups.

A grouper is any callable taking a sequence of :class:`FileChange` and
returning a list of non-empty groups. The pattern-based
:func:`group_by_category` is the default; a similarity or LLM-driven
grouper can be passed to the orchestrator instead without changing the
composer.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Sequence

from vc_smart_commit.grouping.change_classifier import categorize_file
from vc_smart_commit.grouping.group_model import FileChange


Grouper = Callable[[Sequence[FileChange]], List[List[FileChange]]]


def group_by_category(
    changes: Sequence[FileChange],
    categorize: Callable[[str], str] = categorize_file,
) -> List[List[FileChange]]:
    """Group changes by file category.

    Groups appear in the order their category is first encountered and
    keep the encounter order of their files. Only categories actually
    present produce a group.
    """
    groups: Dict[str, List[FileChange]] = {}
    for change in changes:
        groups.setdefault(categorize(change.path), []).append(change)
    return list(groups.values())
