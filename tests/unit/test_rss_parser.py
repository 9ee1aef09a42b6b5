from datetime import datetime, timezone
from pathlib import Path

from ponnect_alerts.sources.rss_parser import (
    parse_feed,
    parse_pub_date,
    strip_html,
    truncate,
)

SNAPSHOT_PATH = (
    Path(__file__).resolve().parents[2] / "data/rss_snapshots/biosecurity_sample.xml"
)


def _rss(items: str) -> str:
    return (
        '<?xml version="1.0"?><rss version="2.0"><channel>'
        "<title>Feed</title><description>Feed description</description>"
        f"{items}</channel></rss>"
    )


def test_parse_feed_unwraps_cdata_title() -> None:
    xml = _rss(
        "<item><title><![CDATA[Tick Alert]]></title>"
        "<link>https://example.com/tick</link><guid>g-1</guid></item>"
    )

    feed = parse_feed(xml)

    assert feed is not None
    assert feed.items[0].title == "Tick Alert"


def test_parse_feed_reads_snapshot() -> None:
    feed = parse_feed(SNAPSHOT_PATH.read_text(encoding="utf-8"))

    assert feed is not None
    assert feed.title == "Biosecurity Alerts"
    assert feed.description == "Current biosecurity alerts for Queensland"
    assert feed.last_build_date
    assert len(feed.items) == 3
    first = feed.items[0]
    assert first.title == "Paralysis Tick Warning - Southeast Queensland"
    assert first.guid == "qld-2025-001"
    assert first.link == "https://www.business.qld.gov.au/alerts/paralysis-tick"
    assert first.category == "Animal health"
    assert "Brisbane" in strip_html(first.description)


def test_missing_guid_falls_back_to_link() -> None:
    xml = _rss(
        "<item><title>No guid</title><link>https://example.com/no-guid</link></item>"
    )

    feed = parse_feed(xml)

    assert feed is not None
    assert feed.items[0].guid == "https://example.com/no-guid"


def test_missing_category_is_none() -> None:
    xml = _rss("<item><title>Plain</title><link>https://example.com/p</link></item>")

    feed = parse_feed(xml)

    assert feed is not None
    assert feed.items[0].category is None


def test_parse_feed_returns_none_for_unrecognizable_input() -> None:
    assert parse_feed("") is None
    assert parse_feed("   ") is None
    assert parse_feed("this is not a feed at all") is None


def test_parse_feed_keeps_channel_without_items() -> None:
    feed = parse_feed(_rss(""))

    assert feed is not None
    assert feed.items == []


def test_strip_html_removes_tags_and_entities() -> None:
    value = "<p>Ticks &amp; snakes&nbsp;near   <b>Perth</b></p>"

    assert strip_html(value) == "Ticks & snakes near Perth"


def test_truncate_appends_ellipsis_only_when_cut() -> None:
    assert truncate("short", 10) == "short"
    assert truncate("a" * 12, 10) == "a" * 10 + "..."


def test_parse_pub_date_accepts_rfc2822_and_iso() -> None:
    rfc = parse_pub_date("Fri, 10 Jan 2025 08:00:00 +1000")
    iso = parse_pub_date("2025-01-10")

    assert rfc == datetime(2025, 1, 9, 22, 0, tzinfo=timezone.utc)
    assert iso == datetime(2025, 1, 10, tzinfo=timezone.utc)
    assert parse_pub_date("not a date") is None
    assert parse_pub_date("") is None
