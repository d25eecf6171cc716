"""Text-generation collaborator: session summaries, period summaries, quotes.

Generation is a premium capability. Free accounts and failed calls get
canned text; a failure never blocks logging.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import requests

from .errors import TextGenerationError
from .models import LogEntry

logger = logging.getLogger("adagio.text_gen")

QUOTE_SOURCE = "Adagio"
SAMPLE_PERIOD_SUMMARY = (
    "This is a sample summary. Upgrade to Premium to get personalized summaries "
    "of your work periods based on your actual data and accomplishments."
)
PERIOD_SUMMARY_FAILED = "Sorry, we couldn't generate a summary for this period. Please try again later."
NO_ENTRIES_SUMMARY = "No work was logged in this period."


@dataclass(frozen=True)
class Quote:
    quote: str
    source: str = QUOTE_SOURCE

    def to_dict(self) -> dict:
        return {"quote": self.quote, "source": self.source}


PREMIUM_QUOTE_TEASER = Quote("Unlock motivational quotes with Premium!")
FALLBACK_QUOTE = Quote("Keep up the great work!")


def period_payload(entries: list[LogEntry]) -> list[dict]:
    return [
        {"project": e.project_label, "summary": e.summary, "duration": e.duration_minutes}
        for e in entries
    ]


class TextGenerator(ABC):
    @abstractmethod
    async def summarize_session(self, tasks: list[str], project_name: str, description: str | None = None) -> str:
        """Summary of at most ~15 words."""

    @abstractmethod
    async def summarize_period(self, entries: list[dict]) -> str:
        """First-person prose grouped by project."""

    @abstractmethod
    async def motivational_quote(self) -> Quote:
        ...


class HttpTextGenerator(TextGenerator):
    """JSON-over-HTTP generator endpoints under ``base_url``."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 20.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

    def _post(self, path: str, payload: dict) -> dict:
        try:
            resp = self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise TextGenerationError(f"POST {path} failed: {e}") from e
        if not isinstance(data, dict):
            raise TextGenerationError(f"POST {path} returned {type(data).__name__}, expected object")
        return data

    @staticmethod
    def _text(data: dict, key: str) -> str:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise TextGenerationError(f"Reply is missing '{key}'")
        return value.strip()

    async def summarize_session(self, tasks: list[str], project_name: str, description: str | None = None) -> str:
        payload = {"tasks": tasks, "projectName": project_name}
        if description:
            payload["description"] = description
        data = await asyncio.to_thread(self._post, "/summarize-session", payload)
        return self._text(data, "summary")

    async def summarize_period(self, entries: list[dict]) -> str:
        data = await asyncio.to_thread(self._post, "/summarize-period", {"entries": entries})
        return self._text(data, "periodSummary")

    async def motivational_quote(self) -> Quote:
        data = await asyncio.to_thread(self._post, "/motivational-quote", {})
        source = data.get("source")
        return Quote(self._text(data, "quote"), source if isinstance(source, str) and source else QUOTE_SOURCE)


class TextService:
    """Gates the generator on the premium capability and supplies fallbacks."""

    def __init__(self, generator: TextGenerator | None = None, premium: bool = False):
        self.generator = generator
        self.premium = premium

    @property
    def available(self) -> bool:
        return self.premium and self.generator is not None

    async def summarize_session(
        self, completed_tasks: list[str], project_label: str, description: str | None = None
    ) -> str:
        """Suggested summary for a log entry; the project label when unavailable."""
        if not self.available:
            return project_label
        try:
            return await self.generator.summarize_session(completed_tasks, project_label, description)
        except TextGenerationError as e:
            logger.warning("Session summary generation failed: %s", e)
            return project_label

    async def summarize_period(self, entries: list[LogEntry]) -> str:
        if not self.premium:
            return SAMPLE_PERIOD_SUMMARY
        if not entries:
            return NO_ENTRIES_SUMMARY
        if self.generator is None:
            return PERIOD_SUMMARY_FAILED
        try:
            return await self.generator.summarize_period(period_payload(entries))
        except TextGenerationError as e:
            logger.warning("Period summary generation failed: %s", e)
            return PERIOD_SUMMARY_FAILED

    async def motivational_quote(self) -> Quote:
        if not self.premium:
            return PREMIUM_QUOTE_TEASER
        if self.generator is None:
            return FALLBACK_QUOTE
        try:
            return await self.generator.motivational_quote()
        except TextGenerationError as e:
            logger.warning("Quote generation failed: %s", e)
            return FALLBACK_QUOTE
