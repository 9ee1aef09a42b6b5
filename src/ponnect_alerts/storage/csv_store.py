import csv
import json
from pathlib import Path
from typing import Dict, Iterable, List

from ponnect_alerts.models.schemas import ClassifiedAlert

ALERT_EXPORT_FIELDS = [
    "id",
    "externalId",
    "source",
    "region",
    "severity",
    "type",
    "title",
    "message",
    "activeFrom",
    "activeUntil",
    "confidence",
    "link",
    "guidance",
]


def read_csv(path: Path) -> List[Dict[str, str]]:
    if not path.exists():
        return []
    with path.open("r", newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        return list(reader)


def write_alerts_csv(path: Path, alerts: Iterable[ClassifiedAlert]) -> int:
    """Write a snapshot of aggregated alerts, replacing any previous file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=ALERT_EXPORT_FIELDS)
        writer.writeheader()
        for alert in alerts:
            row = alert.to_dict()
            row["guidance"] = json.dumps(row.get("guidance") or [])
            row.setdefault("link", "")
            writer.writerow({name: row.get(name) or "" for name in ALERT_EXPORT_FIELDS})
            written += 1
    return written
