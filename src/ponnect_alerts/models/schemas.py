from dataclasses import dataclass, field
from datetime import datetime

STATE_REGIONS = ("QLD", "NSW", "VIC", "SA", "WA", "TAS", "NT", "ACT")
REGION_ALL = "ALL"
REGIONS = STATE_REGIONS + (REGION_ALL,)

# Ordered by urgency, most urgent first.
SEVERITIES = ("EMERGENCY", "WARNING", "WATCH", "INFO")
SEVERITY_RANK = {severity: rank for rank, severity in enumerate(SEVERITIES)}

ALERT_TYPES = ("TICK", "SNAKE", "HEATWAVE", "DISEASE", "OTHER")

# Coarser scale used by admin-curated alerts, least urgent first.
STORED_SEVERITIES = ("INFO", "WARNING", "CRITICAL")
STORED_TO_PIPELINE_SEVERITY = {
    "INFO": "INFO",
    "WARNING": "WARNING",
    "CRITICAL": "EMERGENCY",
}

CONFIDENCE_VERIFIED = "VERIFIED"
CONFIDENCE_HIGH = "HIGH"

SOURCE_OPEN_METEO = "OPEN_METEO"


@dataclass
class FeedSource:
    source_id: str
    name: str
    url: str
    region: str
    source: str
    enabled: bool = True
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None


@dataclass
class City:
    name: str
    region: str
    lat: float
    lon: float


@dataclass
class FetchResult:
    status_code: int
    content_type: str
    body: str


@dataclass
class RawFeedItem:
    title: str
    description: str
    link: str
    pub_date: str
    guid: str
    category: str | None = None


@dataclass
class ParsedFeed:
    title: str
    description: str
    items: list[RawFeedItem]
    last_build_date: str = ""


@dataclass
class Categorization:
    type: str
    severity: str
    region: str | None


@dataclass
class ForecastDay:
    date: str
    max_temp: float
    uv_index: float | None = None


@dataclass
class ClassifiedAlert:
    id: str
    title: str
    message: str
    region: str
    severity: str
    type: str
    active_from: datetime
    active_until: datetime | None
    source: str
    confidence: str
    guidance: list[str] | None
    external_id: str
    link: str | None = None

    def to_dict(self) -> dict:
        payload = {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "region": self.region,
            "severity": self.severity,
            "type": self.type,
            "activeFrom": self.active_from.isoformat(),
            "activeUntil": (
                self.active_until.isoformat() if self.active_until else None
            ),
            "source": self.source,
            "confidence": self.confidence,
            "guidance": self.guidance,
            "externalId": self.external_id,
        }
        if self.link:
            payload["link"] = self.link
        return payload
