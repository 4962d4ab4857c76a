"""
Client for an Ollama LLM server, tuned for short commit descriptions.

One :class:`OllamaClient` is shared by every commit unit of a run, so it
keeps a :class:`requests.Session` open and can check up front, through
``/api/tags``, that the server answers and has the model. Completions go
to ``/api/generate`` without streaming. The default options favour one
short, stable line over creative text: a low temperature, a small token
budget, and generation stops at the first blank line.

Any transport error, non-200 answer, or unexpected body raises
:class:`LLMError` so that callers can fall back to deterministic text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


THINKING_TAGS = ("think", "thinking", "thought", "reasoning")

SYSTEM_PROMPT = (
    "You describe source code changes for git commit subjects. "
    "Reply with a single short imperative phrase and nothing else."
)


class LLMError(Exception):
    """Raised when communication with the LLM server fails."""

    pass


def strip_thinking_tags(text: str) -> str:
    """Remove ``<think>``-style reasoning blocks from a response.

    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    'Answer'
    """
    for tag in THINKING_TAGS:
        text = re.sub(rf"<{tag}>.*?</{tag}>", "", text, flags=re.DOTALL | re.IGNORECASE)
    return text.strip()


def _completion_text(data: Any) -> str:
    """Pull the generated text out of a ``/api/generate`` or chat body."""
    if isinstance(data, dict):
        if isinstance(data.get("response"), str):
            return data["response"]
        message = data.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
    raise LLMError("Unexpected response structure from LLM")


@dataclass
class OllamaClient:
    """Client for interacting with an Ollama server.

    Parameters
    ----------
    base_url : str
        Base URL of the server, e.g. ``"http://localhost"``.
    port : int
        Port of the server, e.g. ``11434``.
    model : str
        Model name used for generation.
    request_timeout : float, optional
        Timeout in seconds for generation requests.
    max_tokens : int, optional
        Generation limit, sent as ``num_predict``.
    temperature : float, optional
        Sampling temperature; low values keep descriptions repeatable.
    system : str, optional
        System prompt sent with every completion.
    stop : list of str, optional
        Stop sequences; a blank line by default since one line is wanted.
    """

    base_url: str
    port: int
    model: str
    request_timeout: float = 60.0
    max_tokens: Optional[int] = 48
    temperature: float = 0.2
    system: str = SYSTEM_PROMPT
    stop: List[str] = field(default_factory=lambda: ["\n\n"])
    session: requests.Session = field(default_factory=requests.Session, repr=False, compare=False)

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}:{self.port}/api/{endpoint}"

    def _options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"temperature": self.temperature}
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        if self.stop:
            options["stop"] = list(self.stop)
        return options

    def is_available(self, timeout: float = 3.0) -> bool:
        """Return True if the server answers and lists the model.

        A model name without a tag matches any tag of that model.
        """
        try:
            response = self.session.get(self._url("tags"), timeout=timeout)
            response.raise_for_status()
            models = response.json().get("models", [])
        except (requests.RequestException, ValueError, AttributeError) as exc:
            logger.debug("Ollama server at %s is not available: %s", self._url("tags"), exc)
            return False
        names = {str(entry.get("name", "")) for entry in models if isinstance(entry, dict)}
        wanted = self.model if ":" in self.model else f"{self.model}:"
        return any(name == self.model or name.startswith(wanted) for name in names)

    def generate(self, prompt: str) -> str:
        """Return the model's completion for ``prompt``.

        Raises
        ------
        LLMError
            If the request fails or the server answers unexpectedly.
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "system": self.system,
            "stream": False,
            "options": self._options(),
        }
        url = self._url("generate")
        logger.debug("Requesting description from %s (model %s)", url, self.model)
        try:
            response = self.session.post(url, json=payload, timeout=self.request_timeout)
        except requests.RequestException as exc:
            logger.error("Failed to connect to LLM: %s", exc)
            raise LLMError(str(exc)) from exc
        if response.status_code != 200:
            logger.error("LLM returned non-200 status %s: %s", response.status_code, response.text)
            raise LLMError(f"LLM returned status {response.status_code}: {response.text}")
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Failed to parse LLM response: %s", exc)
            raise LLMError("Failed to parse LLM response") from exc
        return strip_thinking_tags(_completion_text(data))
