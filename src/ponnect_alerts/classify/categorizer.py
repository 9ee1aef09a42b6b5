"""Keyword heuristics that map free feed text to alert attributes.

Each attribute is decided by an ordered table of ``(keywords, value)`` rows;
the first row with a matching keyword wins. Adding a keyword or a new value
is a table edit, not a control-flow change.
"""

import re

from ponnect_alerts.models.schemas import Categorization, RawFeedItem
from ponnect_alerts.sources.rss_parser import strip_html

TYPE_RULES: list[tuple[tuple[str, ...], str]] = [
    (("tick", "paralysis"), "TICK"),
    (("snake",), "SNAKE"),
    (("heat", "heatwave", "temperature"), "HEATWAVE"),
    (("disease", "outbreak", "parvo", "virus"), "DISEASE"),
]
DEFAULT_TYPE = "OTHER"

SEVERITY_RULES: list[tuple[tuple[str, ...], str]] = [
    (("emergency", "critical", "urgent", "immediate"), "EMERGENCY"),
    (("severe", "warning", "high risk"), "WARNING"),
    (("watch", "advisement", "caution"), "WATCH"),
]
DEFAULT_SEVERITY = "INFO"

# Region keywords match whole words only; short codes such as "sa" or "act"
# would otherwise hit ordinary words.
REGION_RULES: list[tuple[tuple[str, ...], str]] = [
    (("queensland", "qld", "brisbane", "gold coast", "sunshine coast"), "QLD"),
    (("new south wales", "nsw", "sydney", "newcastle"), "NSW"),
    (("victoria", "vic", "melbourne", "geelong"), "VIC"),
    (("south australia", "sa", "adelaide"), "SA"),
    (("western australia", "wa", "perth"), "WA"),
    (("tasmania", "tas", "hobart"), "TAS"),
    (("northern territory", "nt", "darwin"), "NT"),
    (("act", "canberra", "australian capital"), "ACT"),
]

_REGION_PATTERNS = [
    (
        re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")\b"),
        code,
    )
    for keywords, code in REGION_RULES
]


def _first_substring_match(
    text: str, rules: list[tuple[tuple[str, ...], str]], default: str
) -> str:
    for keywords, value in rules:
        if any(keyword in text for keyword in keywords):
            return value
    return default


def detect_region(text: str) -> str | None:
    lowered = text.lower()
    for pattern, code in _REGION_PATTERNS:
        if pattern.search(lowered):
            return code
    return None


def categorize(item: RawFeedItem) -> Categorization:
    # Visible text only; tag attributes such as link targets are ignored.
    text = f"{strip_html(item.title)} {strip_html(item.description)}".lower()
    return Categorization(
        type=_first_substring_match(text, TYPE_RULES, DEFAULT_TYPE),
        severity=_first_substring_match(text, SEVERITY_RULES, DEFAULT_SEVERITY),
        region=detect_region(text),
    )
