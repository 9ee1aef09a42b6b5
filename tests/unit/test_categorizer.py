from ponnect_alerts.classify.categorizer import categorize, detect_region
from ponnect_alerts.models.schemas import Categorization, RawFeedItem


def _item(title: str, description: str = "") -> RawFeedItem:
    return RawFeedItem(
        title=title,
        description=description,
        link="https://example.com/item",
        pub_date="2025-01-10",
        guid="g-1",
    )


def test_paralysis_tick_example_classifies_as_tick_warning_qld() -> None:
    item = _item(
        "Paralysis Tick Warning - Southeast Queensland",
        "High risk conditions reported near Brisbane",
    )

    assert categorize(item) == Categorization(
        type="TICK", severity="WARNING", region="QLD"
    )


def test_categorize_is_pure() -> None:
    item = _item("Snake sighting in Perth", "Caution on trails")

    assert categorize(item) == categorize(item)


def test_type_priority_prefers_tick_over_later_types() -> None:
    item = _item("Tick and snake season", "Heat and disease also expected")

    assert categorize(item).type == "TICK"


def test_type_keywords() -> None:
    assert categorize(_item("Snake bites rising")).type == "SNAKE"
    assert categorize(_item("Heatwave expected")).type == "HEATWAVE"
    assert categorize(_item("Record temperature")).type == "HEATWAVE"
    assert categorize(_item("Parvo outbreak")).type == "DISEASE"
    assert categorize(_item("Council meeting notice")).type == "OTHER"


def test_severity_priority_order() -> None:
    assert categorize(_item("Emergency", "exercise caution")).severity == "EMERGENCY"
    assert categorize(_item("Severe conditions")).severity == "WARNING"
    assert categorize(_item("Fire watch")).severity == "WATCH"
    assert categorize(_item("Advisement issued")).severity == "WATCH"
    assert categorize(_item("Community update")).severity == "INFO"


def test_region_detection_uses_cities_and_names() -> None:
    assert detect_region("Outbreak near Sydney") == "NSW"
    assert detect_region("Reports from Geelong") == "VIC"
    assert detect_region("Darwin vets on alert") == "NT"
    assert detect_region("Canberra dog parks") == "ACT"
    assert detect_region("Hobart and surrounds") == "TAS"


def test_region_codes_only_match_whole_words() -> None:
    assert detect_region("Stay safe and act responsibly") == "ACT"
    assert detect_region("Safety reminder for all owners") is None
    assert detect_region("Wanted: volunteers") is None


def test_inconclusive_item_defaults() -> None:
    result = categorize(_item("", ""))

    assert result == Categorization(type="OTHER", severity="INFO", region=None)


def test_markup_does_not_influence_classification() -> None:
    item = _item(
        "Tick season update",
        '<p>Details at <a href="https://pir.sa.gov.au/emergency-contacts">our page</a>.</p>',
    )

    assert categorize(item) == Categorization(
        type="TICK", severity="INFO", region=None
    )
