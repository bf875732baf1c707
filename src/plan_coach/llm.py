"""
Thin adapter around the hosted chat model: prompt in, free text out.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from .config import CoachSettings, load_settings

logger = logging.getLogger(__name__)


class LLMUnavailableError(RuntimeError):
    """Raised when the model is called without a usable client."""


def extract_text(content: Any) -> str:
    """
    Plain string content as-is; for multi-part content, the first text part.
    """

    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for part in content:
            if isinstance(part, dict):
                if part.get("type", "text") == "text" and isinstance(part.get("text"), str):
                    return part["text"]
            elif getattr(part, "type", "text") == "text" and isinstance(getattr(part, "text", None), str):
                return part.text
        return ""
    return str(content)


class CoachLLM:
    """
    Owns the OpenAI client. A missing credential leaves ``client`` unset and
    every call raises LLMUnavailableError.
    """

    def __init__(self, settings: Optional[CoachSettings] = None, client: Any = None) -> None:
        self.settings = settings or load_settings()
        self.model = self.settings.llm_model
        self.client = client
        if self.client is None:
            self._init_client()

    def _init_client(self) -> None:
        api_key = self.settings.openai_api_key
        try:
            if not api_key:
                raise ValueError("OPENAI_API_KEY environment variable not set")
            self.client = OpenAI(api_key=api_key)
        except Exception as exc:
            self.client = None
            logger.warning("Failed to initialize OpenAI client (%s).", exc)

    def complete(self, system_prompt: str, turns: List[Dict[str, str]]) -> str:
        if self.client is None:
            raise LLMUnavailableError("LLM client is not available; coach flow requires it.")
        response = self.client.chat.completions.create(
            model=self.model,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
            messages=[{"role": "system", "content": system_prompt}, *turns],
        )
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        return extract_text(choices[0].message.content)
