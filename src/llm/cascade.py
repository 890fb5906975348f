"""Credential x model cascade.

A routing request walks an ordered matrix of API credentials and model ids until one completion
succeeds:

    for credential in credentials:      # primary key first, then numbered fallbacks
        for model in models:            # fastest/cheapest first, most capable last
            one attempt, no retries

Every failure moves on to the next pair. Quota and model-availability failures are expected and
logged at INFO; anything else is logged at WARNING but still does not stop the cascade, so a
broken credential can cost one attempt per model before the next credential is tried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from time import monotonic
from typing import Protocol

from src.llm.prompt import build_routing_prompt

logger = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = (
    "not found",
    "404",
    "is not found for api version",
    "is not supported for generatecontent",
)


class CompletionProvider(Protocol):
    def complete(self, credential: str, model: str, prompt: str) -> str: ...


class QuotaExceeded(RuntimeError):
    """The credential is rate-limited or out of quota for this model."""


class ModelNotFound(RuntimeError):
    """The model is unknown or unavailable for this credential."""


@dataclass(frozen=True)
class Attempt:
    """A failed (credential, model) attempt; credentials are referenced by index only."""

    credential_index: int
    model: str
    error: Exception


class AllProvidersExhausted(RuntimeError):
    """Raised when every (credential, model) pair failed."""

    def __init__(self, attempts: Sequence[Attempt]) -> None:
        self.attempts = tuple(attempts)
        self.last_error = self.attempts[-1].error if self.attempts else None
        detail = f"{self.last_error}" if self.last_error else "Unknown error"
        super().__init__(f"All keys and models failed. Last error: {detail}")


def classify_failure(exc: Exception, model: str) -> Exception:
    """Classify a provider failure as `QuotaExceeded`, `ModelNotFound` or leave it as is."""

    status = getattr(exc, "status", None)
    message = str(exc).lower()

    if status == 429 or "429" in message or "quota" in message:
        return QuotaExceeded(f"QUOTA_EXCEEDED: {model}")
    if status == 404 or any(marker in message for marker in _NOT_FOUND_MARKERS):
        return ModelNotFound(f"MODEL_NOT_FOUND: {model}")
    return exc


def unique_credentials(credentials: Iterable[str]) -> list[str]:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""

    seen: dict[str, None] = {}
    for credential in credentials:
        value = (credential or "").strip()
        if value:
            seen.setdefault(value, None)
    return list(seen)


class CascadeRouter:
    """Obtain one completion for a routing prompt across credentials and models."""

    def __init__(
            self,
            provider: CompletionProvider,
            credentials: Sequence[str],
            models: Sequence[str],
            *,
            prompt_builder: Callable[[str], str] = build_routing_prompt,
    ) -> None:
        self._provider = provider
        self._credentials = unique_credentials(credentials)
        self._models = [m.strip() for m in models if m and m.strip()]
        self._prompt_builder = prompt_builder

        if not self._credentials:
            raise ValueError("At least one API credential is required")
        if not self._models:
            raise ValueError("At least one model id is required")

    @property
    def models(self) -> tuple[str, ...]:
        return tuple(self._models)

    @property
    def credential_count(self) -> int:
        return len(self._credentials)

    def classify(self, raw_query: str) -> str:
        """Return the raw completion text for a user query.

        Raises:
            AllProvidersExhausted: If no (credential, model) pair produced a completion.
        """

        prompt = self._prompt_builder(raw_query)
        failures: list[Attempt] = []

        for key_index, credential in enumerate(self._credentials):
            for model in self._models:
                started = monotonic()
                try:
                    text = self._provider.complete(credential, model, prompt)
                except Exception as exc:  # noqa: BLE001 (every failure moves the cascade on)
                    error = classify_failure(exc, model)
                    failures.append(Attempt(credential_index=key_index, model=model, error=error))
                    self._log_failure(key_index, model, error)
                    continue

                latency_ms = int((monotonic() - started) * 1000)
                logger.info(
                    "completion ok key_index=%d model=%s attempts=%d latency_ms=%d",
                    key_index,
                    model,
                    len(failures) + 1,
                    latency_ms,
                )
                return text

            logger.info("key exhausted key_index=%d", key_index)

        raise AllProvidersExhausted(failures)

    @staticmethod
    def _log_failure(key_index: int, model: str, error: Exception) -> None:
        if isinstance(error, QuotaExceeded):
            logger.info("quota exceeded key_index=%d model=%s", key_index, model)
        elif isinstance(error, ModelNotFound):
            logger.info("model not found key_index=%d model=%s", key_index, model)
        else:
            logger.warning(
                "completion failed key_index=%d model=%s error=%s",
                key_index,
                model,
                error,
            )
