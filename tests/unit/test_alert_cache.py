from datetime import datetime, timezone

import pytest

from ponnect_alerts.cache import AlertCache, cache_key
from ponnect_alerts.errors import ValidationError
from ponnect_alerts.models.schemas import ClassifiedAlert


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _alert(alert_id: str) -> ClassifiedAlert:
    return ClassifiedAlert(
        id=alert_id,
        title="Heat Watch - Perth",
        message="Hot",
        region="WA",
        severity="WATCH",
        type="HEATWAVE",
        active_from=datetime(2025, 1, 10, tzinfo=timezone.utc),
        active_until=None,
        source="OPEN_METEO",
        confidence="HIGH",
        guidance=None,
        external_id=alert_id,
    )


def test_cache_key_normalizes_region() -> None:
    assert cache_key(None) == "all"
    assert cache_key("") == "all"
    assert cache_key("all") == "all"
    assert cache_key(" qld ") == "QLD"


def test_entry_is_fresh_until_ttl_elapses() -> None:
    clock = _FakeClock()
    cache = AlertCache(ttl_seconds=60, clock=clock)
    cache.set("QLD", [_alert("a")])

    clock.now = 59.9
    entry = cache.get("QLD")
    assert entry is not None
    assert [alert.id for alert in entry.data] == ["a"]

    clock.now = 60.0
    assert cache.get("QLD") is None


def test_set_replaces_entry_and_keys_are_independent() -> None:
    cache = AlertCache(ttl_seconds=60, clock=_FakeClock())
    cache.set("all", [_alert("a")])
    cache.set("all", [_alert("b"), _alert("c")])
    cache.set("WA", [_alert("d")])

    assert [alert.id for alert in cache.get("all").data] == ["b", "c"]
    assert [alert.id for alert in cache.get("WA").data] == ["d"]


def test_cached_data_is_a_snapshot() -> None:
    cache = AlertCache(ttl_seconds=60, clock=_FakeClock())
    alerts = [_alert("a")]
    entry = cache.set("all", alerts)

    alerts.append(_alert("b"))

    assert len(entry.data) == 1
    assert entry.fetched_at.tzinfo is not None


def test_clear_drops_all_entries() -> None:
    cache = AlertCache(ttl_seconds=60, clock=_FakeClock())
    cache.set("all", [_alert("a")])

    cache.clear()

    assert cache.get("all") is None


def test_cache_key_rejects_unknown_region() -> None:
    with pytest.raises(ValidationError, match="Invalid region"):
        cache_key("junk")
