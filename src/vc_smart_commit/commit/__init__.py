"""
Commit message composition.

See :mod:`vc_smart_commit.commit.composer` for the rules that turn a
group of changes into a commit unit.
"""

from .composer import CommitComposer, DescriptionStrategy, category_to_commit_type  # noqa: F401
