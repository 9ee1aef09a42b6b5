"""Actionable guidance for classified alerts.

The aggregator treats guidance as an injected callable taking
``GuidanceRequest`` and returning a list of strings or ``None``. Failures are
never fatal to an alert.
"""

from __future__ import annotations

import json
import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

import requests

from ponnect_alerts.config import AppConfig

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)
GUIDANCE_CACHE_TTL_SECONDS = 24 * 60 * 60
MAX_RETRIES = 3

STATIC_GUIDANCE: dict[str, list[str]] = {
    "TICK": [
        "Check your dog thoroughly after outdoor activities",
        "Focus on ears, between toes, around eyes and neck",
        "Use veterinary-approved tick prevention products",
        "If you find a tick, remove carefully and seek vet advice",
    ],
    "SNAKE": [
        "Keep dogs on leash in snake-prone areas",
        "Avoid tall grass and rocky areas during warm hours",
        "If bitten, keep dog calm and get to vet immediately",
        "Do not attempt to catch or kill the snake",
    ],
    "DISEASE": [
        "Ensure vaccinations are up to date",
        "Avoid contact with unknown animals",
        "Consult your vet if symptoms appear",
        "Follow quarantine guidelines if advised",
    ],
    "HEATWAVE": [
        "Keep dogs indoors during peak heat (10am-4pm)",
        "Ensure fresh, cool water is always available",
        "Never leave dogs in parked cars",
        "Watch for signs of heat stroke",
    ],
    "OTHER": [
        "Monitor your local area for updates",
        "Follow advice from local authorities",
        "Keep emergency vet contact handy",
    ],
}

_FENCE_RE = re.compile(r"```(?:json)?\n?")


@dataclass
class GuidanceRequest:
    title: str
    message: str
    type: str
    severity: str
    region: str
    source: str


class GuidanceGenerator(Protocol):
    def __call__(self, request: GuidanceRequest) -> list[str] | None: ...


class StaticGuidance:
    def __call__(self, request: GuidanceRequest) -> list[str] | None:
        return list(STATIC_GUIDANCE.get(request.type, STATIC_GUIDANCE["OTHER"]))


def build_prompt(request: GuidanceRequest) -> str:
    return (
        "You are a veterinary advisor for Ponnect, an Australian app that helps "
        "dog owners keep their pets safe.\n\n"
        "Alert details:\n"
        f"- Title: {request.title}\n"
        f"- Description: {request.message}\n"
        f"- Type: {request.type}\n"
        f"- Severity: {request.severity} (INFO, WATCH, WARNING or EMERGENCY)\n"
        f"- Region: {request.region}\n"
        f"- Source: {request.source}\n\n"
        "Write 4-5 specific, actionable safety recommendations for dog owners, "
        "one sentence each, with urgency matching the severity. For EMERGENCY "
        "include when to seek emergency vet care.\n\n"
        "Return ONLY a JSON array of strings."
    )


def parse_guidance_text(text: str) -> list[str] | None:
    cleaned = _FENCE_RE.sub("", text or "").strip()
    if not cleaned:
        return None
    try:
        guidance = json.loads(cleaned)
    except ValueError:
        logger.warning("Guidance response is not JSON")
        return None
    if isinstance(guidance, list) and guidance and all(
        isinstance(item, str) for item in guidance
    ):
        return guidance
    logger.warning("Guidance response has unexpected shape")
    return None


class GeminiGuidance:
    """Text-generation guidance with rate limiting, retries and a result cache."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        min_delay_seconds: float = 2.0,
        timeout: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.min_delay_seconds = min_delay_seconds
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None
        self._cache: dict[str, tuple[float, list[str]]] = {}
        self._lock = threading.Lock()
        self._cache_lock = threading.Lock()

    @staticmethod
    def cache_key(request: GuidanceRequest) -> str:
        return f"{request.type}-{request.severity}-{request.title[:50]}"

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    def __call__(self, request: GuidanceRequest) -> list[str] | None:
        if not self.api_key:
            return None

        key = self.cache_key(request)
        cached = self._cached(key)
        if cached is not None:
            return cached

        # One request in flight at a time across all aggregation workers.
        with self._lock:
            guidance = self._call_api(build_prompt(request))
        if guidance:
            self._store(key, guidance)
        return guidance

    def _cached(self, key: str) -> list[str] | None:
        with self._cache_lock:
            cached = self._cache.get(key)
        if cached and self._clock() - cached[0] < GUIDANCE_CACHE_TTL_SECONDS:
            return list(cached[1])
        return None

    def _store(self, key: str, guidance: list[str]) -> None:
        now = self._clock()
        with self._cache_lock:
            expired = [
                name
                for name, (stored_at, _) in self._cache.items()
                if now - stored_at >= GUIDANCE_CACHE_TTL_SECONDS
            ]
            for name in expired:
                del self._cache[name]
            self._cache[key] = (now, list(guidance))

    def _wait_for_slot(self) -> None:
        if self._last_call is not None:
            elapsed = self._clock() - self._last_call
            if elapsed < self.min_delay_seconds:
                self._sleep(self.min_delay_seconds - elapsed)
        self._last_call = self._clock()

    def _call_api(self, prompt: str) -> list[str] | None:
        url = GEMINI_ENDPOINT.format(model=self.model)
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.7,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": 500,
            },
        }
        for attempt in range(MAX_RETRIES + 1):
            self._wait_for_slot()
            try:
                response = requests.post(
                    url,
                    params={"key": self.api_key},
                    json=payload,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                logger.warning("Guidance request failed: %s", exc)
                return None

            retryable = response.status_code == 429 or response.status_code >= 500
            if not retryable and not 200 <= response.status_code < 300:
                retryable = "RESOURCE_EXHAUSTED" in (response.text or "")
            if retryable:
                if attempt < MAX_RETRIES:
                    backoff = (3**attempt) * 5
                    logger.info(
                        "Guidance rate limited, retrying in %ss (attempt %s/%s)",
                        backoff,
                        attempt + 1,
                        MAX_RETRIES,
                    )
                    self._sleep(backoff)
                    continue
                logger.warning("Guidance retries exhausted")
                return None
            if not 200 <= response.status_code < 300:
                logger.warning("Guidance API error: status %s", response.status_code)
                return None

            try:
                data = response.json()
                text = data["candidates"][0]["content"]["parts"][0]["text"]
            except (ValueError, KeyError, IndexError, TypeError):
                logger.warning("Guidance API returned no text")
                return None
            return parse_guidance_text(text)
        return None


class FallbackGuidance:
    def __init__(self, primary: GuidanceGenerator, fallback: GuidanceGenerator) -> None:
        self.primary = primary
        self.fallback = fallback

    def __call__(self, request: GuidanceRequest) -> list[str] | None:
        guidance = self.primary(request)
        if guidance:
            return guidance
        return self.fallback(request)


def build_guidance(config: AppConfig) -> GuidanceGenerator:
    static = StaticGuidance()
    if not config.guidance_ai_enabled or not config.gemini_api_key:
        return static
    gemini = GeminiGuidance(
        api_key=config.gemini_api_key,
        model=config.gemini_model,
        min_delay_seconds=config.guidance_min_delay_seconds,
    )
    return FallbackGuidance(gemini, static)
