import json
import logging
from typing import Any

import certifi
import requests

from ponnect_alerts.models.schemas import FetchResult, FeedSource

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Ponnect/1.0 (Pet Safety Alerts)"
DEFAULT_TIMEOUT = 10.0


class FeedFetcher:
    """HTTP GET for one source at a time; failures come back as None."""

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self.session = session

    def _headers(self, source: FeedSource) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        headers.update(source.headers)
        return headers

    def fetch(self, source: FeedSource) -> FetchResult | None:
        getter = self.session.get if self.session is not None else requests.get
        try:
            response = getter(
                source.url,
                headers=self._headers(source),
                timeout=source.timeout or self.timeout,
                verify=certifi.where(),
            )
        except requests.RequestException as exc:
            reason = str(exc).strip() or exc.__class__.__name__
            logger.warning("Source %s unavailable: %s", source.name, reason)
            return None

        if not 200 <= response.status_code < 300:
            logger.warning(
                "Source %s unavailable: status %s", source.name, response.status_code
            )
            return None

        content_type = response.headers.get("content-type") or response.headers.get(
            "Content-Type", ""
        )
        return FetchResult(
            status_code=response.status_code,
            content_type=content_type or "",
            body=response.text or "",
        )

    def fetch_json(self, source: FeedSource) -> Any | None:
        result = self.fetch(source)
        if result is None:
            return None
        try:
            return json.loads(result.body)
        except ValueError:
            logger.warning("Source %s returned invalid JSON", source.name)
            return None
