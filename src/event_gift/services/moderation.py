"""Soft moderation of guest text through an optional external classifier.

Moderation never blocks a submission: a flagged verdict routes it to manual
approval, and any provider failure is reported as ``UNKNOWN`` and treated as
not flagged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import httpx

from event_gift.core.settings import settings

logger = logging.getLogger(__name__)

PROVIDER_NONE = "none"
PROVIDER_OPENAI = "openai"


class ModerationVerdict(Enum):
    """Outcome of a classification attempt."""

    FLAGGED = "flagged"
    CLEAR = "clear"
    UNKNOWN = "unknown"


class ModerationProviderError(RuntimeError):
    """Raised by providers when a classification could not be obtained."""


@dataclass(frozen=True)
class Classification:
    """Raw answer from a provider."""

    flagged: bool
    raw: Any = None


class ModerationProvider(Protocol):
    """Network-backed text classifier."""

    name: str

    async def classify(self, text: str) -> Classification:
        """Classify ``text``; raise ``ModerationProviderError`` on failure."""
        ...


@dataclass(frozen=True)
class ModerationResult:
    """Verdict reported to the admission logic."""

    verdict: ModerationVerdict
    provider: str
    raw: Any = None
    summary: str | None = None

    @property
    def ok(self) -> bool:
        """True when the provider produced an answer (or none was needed)."""
        return self.verdict is not ModerationVerdict.UNKNOWN

    @property
    def flagged(self) -> bool:
        return self.verdict is ModerationVerdict.FLAGGED


NOT_CONFIGURED = ModerationResult(verdict=ModerationVerdict.CLEAR, provider=PROVIDER_NONE)


class OpenAIModerationProvider:
    """Classifier backed by the OpenAI moderation endpoint."""

    name = PROVIDER_OPENAI

    def __init__(
        self,
        api_key: str,
        *,
        model: str | None = None,
        url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or settings.openai_moderation_model
        self.url = url or settings.openai_moderation_url
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.moderation_timeout_seconds
        )
        self._transport = transport

    async def classify(self, text: str) -> Classification:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.url,
                    headers=headers,
                    json={"model": self.model, "input": text},
                )
        except httpx.HTTPError as exc:
            raise ModerationProviderError(f"moderation request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ModerationProviderError("moderation response is not JSON") from exc

        if response.status_code >= 400 or not isinstance(payload, dict):
            raise ModerationProviderError(
                f"moderation request failed with status {response.status_code}"
            )

        results = payload.get("results")
        first = results[0] if isinstance(results, list) and results else {}
        flagged = bool(first.get("flagged")) if isinstance(first, dict) else False
        return Classification(flagged=flagged, raw=payload)


class SoftModerationGate:
    """Wrap an optional provider so callers always get a verdict, never an exception."""

    def __init__(self, provider: ModerationProvider | None = None) -> None:
        self.provider = provider

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    async def moderate(self, text: str | None) -> ModerationResult:
        """Classify ``text`` once; failures degrade to ``UNKNOWN``."""
        content = (text or "").strip()
        if not content or self.provider is None:
            return NOT_CONFIGURED

        try:
            answer = await self.provider.classify(content)
        except ModerationProviderError as exc:
            logger.warning("Moderation provider %s failed: %s", self.provider.name, exc)
            return ModerationResult(
                verdict=ModerationVerdict.UNKNOWN,
                provider=self.provider.name,
                summary=str(exc),
            )

        verdict = ModerationVerdict.FLAGGED if answer.flagged else ModerationVerdict.CLEAR
        return ModerationResult(verdict=verdict, provider=self.provider.name, raw=answer.raw)


_moderation_gate: SoftModerationGate | None = None


def get_moderation_gate() -> SoftModerationGate:
    """Return the shared gate, configured from settings on first use."""
    global _moderation_gate
    if _moderation_gate is None:
        provider = (
            OpenAIModerationProvider(settings.openai_api_key)
            if settings.openai_api_key
            else None
        )
        _moderation_gate = SoftModerationGate(provider)
    return _moderation_gate
