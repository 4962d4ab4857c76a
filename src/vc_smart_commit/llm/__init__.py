"""
Language model integration for vc_smart_commit.

This package contains the :class:`OllamaClient` for communicating with
an Ollama server and the :class:`OllamaDescriptionStrategy`, an optional
description strategy for the commit composer.
"""

from .description_strategy import OllamaDescriptionStrategy  # noqa: F401
from .ollama_client import LLMError, OllamaClient, strip_thinking_tags  # noqa: F401
