"""
Generative text boundary.

All calls to the text-generation API go through a client here, and every
outcome leaves this module as `Ok(text)` or `Err(reason)`. Nothing
downstream inspects the raw text for error markers.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Callable, Union

logger = logging.getLogger(__name__)

API_KEY_ERROR_MESSAGE = (
    "AI Service Error: GEMINI_API_KEY is not configured. Please follow these steps:\n"
    "1. Create a file named .env in the project's root directory.\n"
    "2. Add this line to it: GEMINI_API_KEY=your_google_api_key_here\n"
    "3. Restart the server."
)
ERROR_PREFIX = "Error:"


@dataclass(frozen=True)
class Ok:
    text: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    reason: str

    @property
    def ok(self) -> bool:
        return False


TextResult = Union[Ok, Err]


def classify(raw: str | None) -> TextResult:
    """Map a raw provider string onto the result type."""
    if raw is None:
        return Err("Error: The AI service returned an empty response.")
    if raw.startswith(ERROR_PREFIX):
        return Err(raw)
    return Ok(raw)


def tcp_probe(host: str, port: int, timeout: float) -> Callable[[], bool]:
    """Connectivity check: can we open a TCP connection to a well-known host?"""
    def _probe() -> bool:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError:
            return False
    return _probe


class GeminiTextClient:
    """Google Gemini text generation."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.5-flash",
        *,
        is_online: Callable[[], bool] | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._is_online = is_online or (lambda: True)

    def generate(self, prompt: str, *, temperature: float = 0.5, offline_message: str | None = None) -> TextResult:
        if not self._api_key:
            return Err(API_KEY_ERROR_MESSAGE)

        if not self._is_online():
            return Err(offline_message or "Error: You are offline. Please connect to the internet to use AI features.")

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        try:
            genai.configure(api_key=self._api_key)
            model = genai.GenerativeModel(self._model)
            response = model.generate_content(
                prompt,
                generation_config={"temperature": temperature},
            )
            return classify(response.text)
        except Exception:
            logger.exception("Error generating text with Gemini API")
            return Err("Error: Could not reach the AI service. Please check your network connection and API configuration.")
