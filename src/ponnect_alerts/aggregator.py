"""Fan-out collection, dedup, ordering and caching of external alerts."""

import hashlib
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Protocol

from ponnect_alerts.cache import ALL_REGIONS_KEY, AlertCache, cache_key
from ponnect_alerts.classify.categorizer import categorize
from ponnect_alerts.config import AppConfig
from ponnect_alerts.errors import AggregationError
from ponnect_alerts.guidance import GuidanceGenerator, GuidanceRequest, build_guidance
from ponnect_alerts.models.schemas import (
    CONFIDENCE_VERIFIED,
    REGION_ALL,
    SEVERITY_RANK,
    STORED_TO_PIPELINE_SEVERITY,
    City,
    ClassifiedAlert,
    FeedSource,
    RawFeedItem,
)
from ponnect_alerts.sources.fetcher import FeedFetcher
from ponnect_alerts.sources.registry import load_cities, load_feed_sources
from ponnect_alerts.sources.rss_parser import parse_feed, parse_pub_date, strip_html, truncate
from ponnect_alerts.sources.weather import alerts_for_city, forecast_url, parse_forecast

logger = logging.getLogger(__name__)

GOV_SOURCE_LABEL = "Government Biosecurity Feeds"
WEATHER_SOURCE_LABEL = "Open-Meteo Weather API"


class Collector(Protocol):
    name: str

    def __call__(self) -> list[ClassifiedAlert]: ...


@dataclass
class AggregationResult:
    alerts: list[ClassifiedAlert]
    cached: bool
    last_updated: datetime


def _item_guid(source: FeedSource, item: RawFeedItem) -> str:
    if item.guid:
        return item.guid
    digest = hashlib.sha256(
        f"{source.source_id}:{item.title}:{item.pub_date}".encode("utf-8")
    ).hexdigest()
    return digest[:16]


class GovFeedCollector:
    """fetch -> parse -> categorize -> guidance for one government feed."""

    def __init__(
        self,
        source: FeedSource,
        fetcher: FeedFetcher,
        guidance: GuidanceGenerator | None = None,
        message_max_length: int = 300,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.source = source
        self.name = source.name
        self.fetcher = fetcher
        self.guidance = guidance
        self.message_max_length = message_max_length
        self._now = now

    def __call__(self) -> list[ClassifiedAlert]:
        result = self.fetcher.fetch(self.source)
        if result is None:
            return []
        parsed = parse_feed(result.body)
        if parsed is None:
            logger.warning("Source %s returned no recognizable feed", self.name)
            return []

        alerts: list[ClassifiedAlert] = []
        for item in parsed.items:
            try:
                alert = self.build_alert(item)
            except Exception:  # noqa: BLE001 - one bad item must not drop the feed
                logger.exception("Skipping unreadable item from %s", self.name)
                continue
            alert.guidance = self._guidance_for(alert)
            alerts.append(alert)
        logger.info("Source %s: %d alerts", self.name, len(alerts))
        return alerts

    def build_alert(self, item: RawFeedItem) -> ClassifiedAlert:
        categorized = categorize(item)
        guid = _item_guid(self.source, item)
        active_from = parse_pub_date(item.pub_date) or self._now()
        return ClassifiedAlert(
            id=f"gov-{self.source.source}-{guid}",
            title=strip_html(item.title),
            message=truncate(strip_html(item.description), self.message_max_length),
            region=categorized.region or self.source.region or REGION_ALL,
            severity=categorized.severity,
            type=categorized.type,
            active_from=active_from,
            active_until=None,
            source=self.source.source,
            confidence=CONFIDENCE_VERIFIED,
            guidance=None,
            external_id=f"{self.source.source}:{guid}",
            link=item.link or None,
        )

    def _guidance_for(self, alert: ClassifiedAlert) -> list[str] | None:
        if self.guidance is None:
            return None
        request = GuidanceRequest(
            title=alert.title,
            message=alert.message,
            type=alert.type,
            severity=alert.severity,
            region=alert.region,
            source=alert.source,
        )
        try:
            guidance = self.guidance(request)
        except Exception as exc:  # noqa: BLE001 - guidance is optional
            logger.warning("Guidance unavailable for %s: %s", alert.id, exc)
            return None
        return list(guidance) if guidance else None


class WeatherCollector:
    """Forecast fetch and heat/UV threshold alerts for one city."""

    def __init__(
        self,
        city: City,
        fetcher: FeedFetcher,
        base_url: str,
        forecast_days: int = 4,
    ) -> None:
        self.city = city
        self.name = f"Open-Meteo {city.name}"
        self.fetcher = fetcher
        self.source = FeedSource(
            source_id=f"open_meteo_{city.region.lower()}",
            name=self.name,
            url=forecast_url(base_url, city, forecast_days),
            region=city.region,
            source="OPEN_METEO",
        )

    def __call__(self) -> list[ClassifiedAlert]:
        payload = self.fetcher.fetch_json(self.source)
        if payload is None:
            return []
        days = parse_forecast(payload)
        if not days:
            logger.warning("Source %s returned no forecast days", self.name)
            return []
        return alerts_for_city(self.city, days)


def filter_by_region(
    alerts: Iterable[ClassifiedAlert], key: str
) -> list[ClassifiedAlert]:
    if key == ALL_REGIONS_KEY:
        return list(alerts)
    return [alert for alert in alerts if alert.region in {key, REGION_ALL}]


def dedupe_alerts(alerts: Iterable[ClassifiedAlert]) -> list[ClassifiedAlert]:
    seen: set[str] = set()
    unique: list[ClassifiedAlert] = []
    for alert in alerts:
        if alert.external_id in seen:
            continue
        seen.add(alert.external_id)
        unique.append(alert)
    return unique


def sort_alerts(
    alerts: Iterable[ClassifiedAlert], newest_first: bool
) -> list[ClassifiedAlert]:
    def _key(alert: ClassifiedAlert) -> tuple[int, float]:
        timestamp = alert.active_from.timestamp()
        return (
            SEVERITY_RANK.get(alert.severity, len(SEVERITY_RANK)),
            -timestamp if newest_first else timestamp,
        )

    return sorted(alerts, key=_key)


class AlertAggregator:
    def __init__(
        self,
        collectors: list[Collector],
        cache: AlertCache,
        newest_first: bool,
        max_workers: int = 8,
    ) -> None:
        self.collectors = collectors
        self.cache = cache
        self.newest_first = newest_first
        self.max_workers = max_workers

    def get_alerts(
        self, region: str | None = None, force_refresh: bool = False
    ) -> AggregationResult:
        key = cache_key(region)
        if not force_refresh:
            entry = self.cache.get(key)
            if entry is not None:
                return AggregationResult(
                    alerts=list(entry.data), cached=True, last_updated=entry.fetched_at
                )

        try:
            candidates = self._collect()
            alerts = sort_alerts(
                dedupe_alerts(filter_by_region(candidates, key)),
                newest_first=self.newest_first,
            )
        except Exception as exc:
            logger.exception("Alert aggregation failed")
            raise AggregationError() from exc

        entry = self.cache.set(key, alerts)
        logger.info(
            "Aggregated %d alerts for %s from %d sources",
            len(alerts),
            key,
            len(self.collectors),
        )
        return AggregationResult(
            alerts=alerts, cached=False, last_updated=entry.fetched_at
        )

    def _collect(self) -> list[ClassifiedAlert]:
        if not self.collectors:
            return []
        workers = max(1, min(self.max_workers, len(self.collectors)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._run_collector, collector)
                for collector in self.collectors
            ]
            candidates: list[ClassifiedAlert] = []
            # Submission order, so output does not depend on completion order.
            for future in futures:
                candidates.extend(future.result())
        return candidates

    @staticmethod
    def _run_collector(collector: Collector) -> list[ClassifiedAlert]:
        try:
            return list(collector())
        except Exception:  # noqa: BLE001 - a failing source contributes nothing
            logger.exception("Source %s failed", getattr(collector, "name", "?"))
            return []


def build_gov_aggregator(
    config: AppConfig,
    fetcher: FeedFetcher | None = None,
    guidance: GuidanceGenerator | None = None,
    clock: Callable[[], float] | None = None,
) -> AlertAggregator:
    fetcher = fetcher or FeedFetcher(
        user_agent=config.user_agent, timeout=config.fetch_timeout_seconds
    )
    guidance = guidance if guidance is not None else build_guidance(config)
    collectors: list[Collector] = [
        GovFeedCollector(
            source,
            fetcher,
            guidance=guidance,
            message_max_length=config.message_max_length,
        )
        for source in load_feed_sources(config.gov_feeds_csv)
    ]
    cache = AlertCache(config.gov_cache_ttl_seconds, clock or time.monotonic)
    return AlertAggregator(
        collectors, cache, newest_first=True, max_workers=config.fetch_max_workers
    )


def build_weather_aggregator(
    config: AppConfig,
    fetcher: FeedFetcher | None = None,
    clock: Callable[[], float] | None = None,
) -> AlertAggregator:
    fetcher = fetcher or FeedFetcher(
        user_agent=config.user_agent, timeout=config.fetch_timeout_seconds
    )
    collectors: list[Collector] = [
        WeatherCollector(
            city,
            fetcher,
            base_url=config.weather_api_base_url,
            forecast_days=config.forecast_days,
        )
        for city in load_cities(config.cities_csv)
    ]
    cache = AlertCache(config.weather_cache_ttl_seconds, clock or time.monotonic)
    return AlertAggregator(
        collectors, cache, newest_first=False, max_workers=config.fetch_max_workers
    )


def _recency(item: dict) -> float:
    value = item.get("activeFrom") or item.get("createdAt") or ""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def merge_alerts(
    persisted: Iterable[dict], external: Iterable[ClassifiedAlert]
) -> list[dict]:
    """One list of curated and external alerts on the four-level scale."""
    merged: list[dict] = []
    for row in persisted:
        item = dict(row)
        item["storedSeverity"] = row.get("severity")
        item["severity"] = STORED_TO_PIPELINE_SEVERITY.get(row.get("severity"), "INFO")
        item["origin"] = "community"
        merged.append(item)
    for alert in external:
        item = alert.to_dict()
        item["origin"] = "external"
        merged.append(item)

    return sorted(
        merged,
        key=lambda item: (
            SEVERITY_RANK.get(item["severity"], len(SEVERITY_RANK)),
            -_recency(item),
        ),
    )
