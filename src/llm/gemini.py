"""Gemini text-completion provider (REST, `generateContent`).

One call = one (credential, model) attempt. The provider does not retry and does not classify
failures; it only reports them precisely enough for the cascade to classify (`status` for HTTP
errors, a message otherwise).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT_S = 15.0


class ProviderError(RuntimeError):
    """Raised when a completion call fails."""


class ProviderHTTPError(ProviderError):
    """The provider answered with a non-2xx HTTP status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class GeminiConfig:
    """Transport settings shared by every completion call."""

    api_base: str = DEFAULT_API_BASE
    timeout_s: float = DEFAULT_TIMEOUT_S
    temperature: float = 0.0


def _generate_url(api_base: str, model: str) -> str:
    return f"{api_base.rstrip('/')}/models/{quote(model, safe='.-_')}:generateContent"


def _error_message(exc: HTTPError) -> str:
    try:
        body = json.loads(exc.read() or b"{}")
        return str(body["error"]["message"])
    except Exception:  # noqa: BLE001
        return f"HTTP {exc.code}"


def _response_text(decoded: dict[str, Any]) -> str:
    candidates = decoded.get("candidates") or []
    if not candidates:
        reason = (decoded.get("promptFeedback") or {}).get("blockReason")
        raise ProviderError(f"Gemini returned no candidates (blockReason={reason})")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))
    if not text.strip():
        raise ProviderError("Gemini returned an empty completion")
    return text


class GeminiProvider:
    """Completion provider for the Gemini `generateContent` REST API."""

    def __init__(self, config: GeminiConfig | None = None) -> None:
        self._config = config or GeminiConfig()

    def complete(self, credential: str, model: str, prompt: str) -> str:
        """Send one prompt and return the completion text.

        Raises:
            ProviderHTTPError: The API returned an error status (429, 404, ...).
            ProviderError: Connection failure or an unexpected response shape.
        """

        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self._config.temperature},
        }
        req = Request(
            _generate_url(self._config.api_base, model),
            method="POST",
            headers={
                "x-goog-api-key": credential,
                "Content-Type": "application/json",
            },
            data=json.dumps(payload).encode(),
        )

        try:
            with urlopen(req, timeout=self._config.timeout_s) as resp:  # noqa: S310
                body = resp.read()
        except HTTPError as exc:
            raise ProviderHTTPError(exc.code, _error_message(exc)) from exc
        except (URLError, TimeoutError) as exc:
            raise ProviderError(f"Gemini connection error: {exc}") from exc

        try:
            decoded = json.loads(body)
        except json.JSONDecodeError as exc:
            raise ProviderError("Gemini returned a non-JSON body") from exc
        return _response_text(decoded)
