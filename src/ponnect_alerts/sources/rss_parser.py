"""Tolerant RSS parsing for government biosecurity feeds.

Upstream feeds vary in strictness, so parsing goes through feedparser, which
accepts malformed documents and unwraps CDATA sections. Anything that does not
look like a feed at all comes back as ``None`` instead of raising.
"""

import calendar
import html
import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import feedparser

from ponnect_alerts.models.schemas import ParsedFeed, RawFeedItem

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_html(value: str) -> str:
    if not value:
        return ""
    text = _TAG_RE.sub("", value)
    text = html.unescape(text).replace("\xa0", " ")
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate(value: str, max_len: int) -> str:
    if len(value) <= max_len:
        return value
    return value[:max_len] + "..."


def parse_pub_date(value: str) -> datetime | None:
    """Parse an RFC-2822 or ISO-8601 date; naive values are taken as UTC."""
    if not value:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None

    parsed: datetime | None = None
    try:
        parsed = parsedate_to_datetime(cleaned)
    except (TypeError, ValueError):
        parsed = None

    if parsed is None:
        iso = cleaned[:-1] + "+00:00" if cleaned.endswith("Z") else cleaned
        try:
            parsed = datetime.fromisoformat(iso)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _entry_pub_date(entry: feedparser.FeedParserDict) -> str:
    raw = entry.get("published") or entry.get("updated") or ""
    if raw:
        return raw
    published = entry.get("published_parsed") or entry.get("updated_parsed")
    if published:
        timestamp = calendar.timegm(published)
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
    return ""


def _entry_to_item(entry: feedparser.FeedParserDict) -> RawFeedItem:
    link = (entry.get("link") or "").strip()
    guid = (entry.get("id") or entry.get("guid") or "").strip()
    category = (entry.get("category") or "").strip()
    return RawFeedItem(
        title=(entry.get("title") or "").strip(),
        description=(entry.get("summary") or entry.get("description") or "").strip(),
        link=link,
        pub_date=_entry_pub_date(entry),
        guid=guid or link,
        category=category or None,
    )


def parse_feed(xml_text: str | bytes) -> ParsedFeed | None:
    if not xml_text:
        return None
    data = xml_text.encode("utf-8") if isinstance(xml_text, str) else xml_text
    if not data.strip():
        return None

    feed = feedparser.parse(data)
    entries = getattr(feed, "entries", []) or []
    if not feed.get("version") and not entries:
        bozo_exc = feed.get("bozo_exception")
        logger.warning(
            "Unparsable feed: %s", bozo_exc if bozo_exc is not None else "no RSS structure"
        )
        return None

    channel = feed.get("feed", {}) or {}
    return ParsedFeed(
        title=(channel.get("title") or "").strip(),
        description=(channel.get("subtitle") or channel.get("description") or "").strip(),
        items=[_entry_to_item(entry) for entry in entries],
        last_build_date=(channel.get("updated") or "").strip(),
    )
