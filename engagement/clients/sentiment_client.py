"""
Sentiment analysis service client.

Posts are enriched with a sentiment classification of their text before
being persisted. The enrichment is best-effort: if the service is not
configured, misconfigured, slow, unreachable or returns garbage, the post is created
without sentiment. analyze() never raises.

Request body:   { "text": "<post content>" }
Response body:  any JSON object, stored verbatim on the post
"""
import logging
from typing import Optional

import httpx

from engagement.config import settings
from engagement.exceptions import UpstreamUnavailable
from engagement.telemetry import SENTIMENT_ERRORS_TOTAL

logger = logging.getLogger(__name__)


class SentimentClient:
    def __init__(self, url: Optional[str], timeout: float = 3.0) -> None:
        self._url = url
        self._timeout = timeout
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def configured(self) -> bool:
        return bool(self._url)

    async def start(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        if not self.configured:
            logger.info("Sentiment analysis URL not set — enrichment disabled")
            return
        self._http = httpx.AsyncClient(timeout=self._timeout, transport=transport)

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    async def analyze(self, text: str) -> Optional[dict]:
        """Return the sentiment result for `text`, or None if unavailable."""
        if not self.configured:
            return None
        try:
            result = await self._classify(text)
        except UpstreamUnavailable as exc:
            logger.warning("Sentiment analysis unavailable, skipping: %s", exc)
            SENTIMENT_ERRORS_TOTAL.inc()
            return None
        logger.debug("Sentiment analysis result: %s", result)
        return result

    async def _classify(self, text: str) -> dict:
        if self._http is None:
            raise UpstreamUnavailable("sentiment client not started")
        try:
            resp = await self._http.post(self._url, json={"text": text})
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            raise UpstreamUnavailable(f"{type(exc).__name__}: {exc}") from exc
        if not isinstance(data, dict):
            raise UpstreamUnavailable("response is not a JSON object")
        return data


# Singleton
sentiment_client = SentimentClient(
    settings.sentiment_analysis_url, timeout=settings.sentiment_timeout_seconds
)
