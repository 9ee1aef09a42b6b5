import requests

from ponnect_alerts.models.schemas import FeedSource
from ponnect_alerts.sources import fetcher as fetcher_module
from ponnect_alerts.sources.fetcher import FeedFetcher


class _FakeResponse:
    def __init__(self, status_code: int, text: str, content_type: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.headers = {"content-type": content_type} if content_type else {}


def _source(**overrides) -> FeedSource:
    values = {
        "source_id": "qld",
        "name": "QLD Biosecurity",
        "url": "https://example.com/rss",
        "region": "QLD",
        "source": "GOV_QLD",
    }
    values.update(overrides)
    return FeedSource(**values)


def test_fetch_sends_user_agent_and_timeout(monkeypatch) -> None:
    calls: list[dict] = []

    def fake_get(url, headers, timeout, verify):
        calls.append({"url": url, "headers": headers, "timeout": timeout})
        return _FakeResponse(200, "<rss/>", "application/rss+xml")

    monkeypatch.setattr(fetcher_module.requests, "get", fake_get)

    result = FeedFetcher(user_agent="Ponnect/Test", timeout=3.0).fetch(
        _source(headers={"Accept": "application/rss+xml"})
    )

    assert result is not None
    assert result.body == "<rss/>"
    assert result.content_type == "application/rss+xml"
    assert calls[0]["url"] == "https://example.com/rss"
    assert calls[0]["headers"]["User-Agent"] == "Ponnect/Test"
    assert calls[0]["headers"]["Accept"] == "application/rss+xml"
    assert calls[0]["timeout"] == 3.0


def test_source_timeout_overrides_default(monkeypatch) -> None:
    seen: list[float] = []

    def fake_get(url, headers, timeout, verify):
        seen.append(timeout)
        return _FakeResponse(200, "ok")

    monkeypatch.setattr(fetcher_module.requests, "get", fake_get)

    FeedFetcher(timeout=10.0).fetch(_source(timeout=2.5))

    assert seen == [2.5]


def test_non_success_status_returns_none(monkeypatch, caplog) -> None:
    monkeypatch.setattr(
        fetcher_module.requests,
        "get",
        lambda url, headers, timeout, verify: _FakeResponse(503, "down"),
    )

    with caplog.at_level("WARNING"):
        result = FeedFetcher().fetch(_source())

    assert result is None
    assert "status 503" in caplog.text


def test_transport_error_returns_none(monkeypatch) -> None:
    def fake_get(url, headers, timeout, verify):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(fetcher_module.requests, "get", fake_get)

    assert FeedFetcher().fetch(_source()) is None


def test_fetch_json_decodes_body(monkeypatch) -> None:
    monkeypatch.setattr(
        fetcher_module.requests,
        "get",
        lambda url, headers, timeout, verify: _FakeResponse(200, '{"daily": {}}'),
    )

    assert FeedFetcher().fetch_json(_source()) == {"daily": {}}


def test_fetch_json_invalid_body_returns_none(monkeypatch) -> None:
    monkeypatch.setattr(
        fetcher_module.requests,
        "get",
        lambda url, headers, timeout, verify: _FakeResponse(200, "<html>"),
    )

    assert FeedFetcher().fetch_json(_source()) is None
