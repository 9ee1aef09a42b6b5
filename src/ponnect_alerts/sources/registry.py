import logging
from pathlib import Path

from ponnect_alerts.config import parse_bool
from ponnect_alerts.models.schemas import REGIONS, STATE_REGIONS, City, FeedSource
from ponnect_alerts.storage.csv_store import read_csv

logger = logging.getLogger(__name__)

DEFAULT_GOV_FEEDS = [
    FeedSource(
        source_id="gov_qld_biosecurity",
        name="QLD Biosecurity",
        url="https://www.business.qld.gov.au/rss/biosecurity-alerts.rss",
        region="QLD",
        source="GOV_QLD",
    ),
]

DEFAULT_CITIES = [
    City(name="Brisbane", region="QLD", lat=-27.4698, lon=153.0251),
    City(name="Sydney", region="NSW", lat=-33.8688, lon=151.2093),
    City(name="Melbourne", region="VIC", lat=-37.8136, lon=144.9631),
    City(name="Adelaide", region="SA", lat=-34.9285, lon=138.6007),
    City(name="Perth", region="WA", lat=-31.9505, lon=115.8605),
    City(name="Hobart", region="TAS", lat=-42.8821, lon=147.3272),
    City(name="Darwin", region="NT", lat=-12.4634, lon=130.8456),
    City(name="Canberra", region="ACT", lat=-35.2809, lon=149.1300),
]


def _parse_timeout(value: str) -> float | None:
    if not value:
        return None
    try:
        timeout = float(value)
    except ValueError:
        return None
    return timeout if timeout > 0 else None


def load_feed_sources(path: Path) -> list[FeedSource]:
    """Load enabled government feed descriptors, or the built-in defaults."""
    rows = read_csv(path)
    if not rows:
        return list(DEFAULT_GOV_FEEDS)

    sources: list[FeedSource] = []
    for row in rows:
        url = (row.get("url") or "").strip()
        region = (row.get("region") or "").strip().upper() or "ALL"
        if not url:
            continue
        if region not in REGIONS:
            logger.warning(
                "Skipping feed %s: unknown region %s", row.get("source_id"), region
            )
            continue
        source = FeedSource(
            source_id=row.get("source_id", ""),
            name=row.get("name", "") or url,
            url=url,
            region=region,
            source=(row.get("source") or "GOV").strip().upper(),
            enabled=parse_bool(row.get("enabled", ""), True),
            timeout=_parse_timeout(row.get("timeout", "")),
        )
        if source.enabled:
            sources.append(source)
    return sources


def load_cities(path: Path) -> list[City]:
    """Load tracked forecast cities, or the eight capitals by default."""
    rows = read_csv(path)
    if not rows:
        return list(DEFAULT_CITIES)

    cities: list[City] = []
    for row in rows:
        region = (row.get("region") or "").strip().upper()
        if region not in STATE_REGIONS:
            logger.warning("Skipping city %s: unknown region %s", row.get("name"), region)
            continue
        try:
            lat = float(row.get("lat", ""))
            lon = float(row.get("lon", ""))
        except ValueError:
            logger.warning("Skipping city %s: invalid coordinates", row.get("name"))
            continue
        cities.append(City(name=row.get("name", ""), region=region, lat=lat, lon=lon))
    return cities
