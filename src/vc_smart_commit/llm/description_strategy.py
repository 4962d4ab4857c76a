"""
LLM-backed commit descriptions.

:class:`OllamaDescriptionStrategy` plugs into
:class:`vc_smart_commit.commit.composer.CommitComposer` as its
``describe`` callable. It asks the model for a one-line description of a
group of changes and cleans the answer up. Whenever the model cannot be
reached or answers with nothing usable, the heuristic description is
returned unchanged.
"""

from __future__ import annotations

import logging
import re
from textwrap import dedent
from typing import Sequence

from vc_smart_commit.grouping.group_model import FileChange
from vc_smart_commit.llm.ollama_client import LLMError, OllamaClient


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


MAX_DESCRIPTION_LENGTH = 72
TYPE_PREFIX = re.compile(
    r"^\s*\[?(feat|fix|docs|style|refactor|test|chore|perf|ci|build|revert)\]?(\([^)]*\))?:\s*",
    re.IGNORECASE,
)


class OllamaDescriptionStrategy:
    """Describe a change group with an Ollama model.

    Parameters
    ----------
    client : OllamaClient
        Client used for generation.
    max_diff_lines : int, optional
        Number of changed lines per file included in the prompt.
    """

    def __init__(self, client: OllamaClient, max_diff_lines: int = 20) -> None:
        self.client = client
        self.max_diff_lines = max_diff_lines

    def build_prompt(self, group: Sequence[FileChange], category: str, heuristic: str) -> str:
        parts = []
        for change in group:
            lines = [
                line
                for line in change.content_diff.splitlines()
                if line.startswith(("+", "-")) and not line.startswith(("+++", "---"))
            ]
            context = "\n".join(lines[: self.max_diff_lines]) if lines else change.content_diff
            parts.append(f"File: {change.path} ({change.status.value})\n{context}")
        changes = "\n\n".join(parts)
        return dedent(
            f"""
            You write the description part of a Conventional Commit subject.
            Answer with ONE line only: an imperative, lower-case phrase of at
            most 10 words, without type prefix, scope, or trailing period.

            Category: {category}
            Draft description: {heuristic}

            CHANGES:
            """
        ).strip() + "\n" + changes

    def clean(self, raw: str) -> str:
        for line in raw.splitlines():
            line = TYPE_PREFIX.sub("", line.strip().strip("`\"'")).strip().rstrip(".")
            if line:
                line = line[:1].lower() + line[1:]
                return line[:MAX_DESCRIPTION_LENGTH].rstrip()
        return ""

    def __call__(self, group: Sequence[FileChange], category: str, heuristic: str) -> str:
        try:
            raw = self.client.generate(self.build_prompt(group, category, heuristic))
        except LLMError as exc:
            logger.warning("LLM description failed for %s group: %s; using heuristic.", category, exc)
            return heuristic
        return self.clean(raw) or heuristic
