"""Heat and UV alerts derived from Open-Meteo daily forecasts."""

import logging
import urllib.parse
from datetime import date as date_type
from datetime import datetime, timedelta, timezone
from typing import Any

from ponnect_alerts.models.schemas import (
    CONFIDENCE_HIGH,
    SOURCE_OPEN_METEO,
    City,
    ClassifiedAlert,
    ForecastDay,
)

logger = logging.getLogger(__name__)

HEAT_WATCH_C = 35.0
HEAT_WARNING_C = 38.0
HEAT_EMERGENCY_C = 42.0
UV_EXTREME = 11.0

DAILY_FIELDS = "temperature_2m_max,temperature_2m_min,uv_index_max"
FORECAST_TIMEZONE = "Australia/Sydney"

BASE_HEAT_GUIDANCE = [
    "Keep dogs indoors during peak heat (10am-4pm)",
    "Ensure fresh, cool water is always available",
    "Never leave dogs in parked cars",
    "Test pavement with your hand before walks",
]

UV_GUIDANCE = [
    "Limit outdoor time during 10am-3pm",
    "Apply pet-safe sunscreen to nose and ears",
    "Provide shaded areas in your yard",
    "Light-colored dogs are especially vulnerable",
]


def heatwave_severity(max_temp: float) -> str | None:
    if max_temp >= HEAT_EMERGENCY_C:
        return "EMERGENCY"
    if max_temp >= HEAT_WARNING_C:
        return "WARNING"
    if max_temp >= HEAT_WATCH_C:
        return "WATCH"
    return None


def heat_guidance(max_temp: float) -> list[str]:
    if max_temp >= HEAT_WARNING_C:
        return [
            "Avoid all outdoor exercise",
            "Use cooling mats or wet towels",
            *BASE_HEAT_GUIDANCE,
            "Watch for signs: excessive panting, drooling, collapse",
        ]
    return ["Walk only early morning or after sunset", *BASE_HEAT_GUIDANCE]


def _day_window(day: str) -> tuple[datetime, datetime]:
    start = datetime.combine(
        date_type.fromisoformat(day[:10]), datetime.min.time(), tzinfo=timezone.utc
    )
    return start, start + timedelta(hours=24)


def _display_date(start: datetime) -> str:
    return f"{start:%A} {start.day} {start:%b}"


def generate_heatwave_alert(
    city: City, max_temp: float, date: str
) -> ClassifiedAlert | None:
    severity = heatwave_severity(max_temp)
    if severity is None:
        return None

    active_from, active_until = _day_window(date)
    if severity == "EMERGENCY":
        title = f"EMERGENCY: Extreme Heat - {city.name}"
        advice = "Dangerous conditions for pets. Keep all dogs indoors."
    elif severity == "WARNING":
        title = f"Heat Warning - {city.name}"
        advice = "High risk conditions. Avoid outdoor exercise."
    else:
        title = f"Heat Watch - {city.name}"
        advice = "Elevated temperatures. Take precautions during walks."

    message = (
        f"Expected maximum temperature of {round(max_temp)}°C on "
        f"{_display_date(active_from)} in {city.name}. {advice}"
    )
    return ClassifiedAlert(
        id=f"heatwave-{city.region}-{date}",
        title=title,
        message=message,
        region=city.region,
        severity=severity,
        type="HEATWAVE",
        active_from=active_from,
        active_until=active_until,
        source=SOURCE_OPEN_METEO,
        confidence=CONFIDENCE_HIGH,
        guidance=heat_guidance(max_temp),
        external_id=f"open-meteo-{city.region}-{date}",
    )


def generate_uv_alert(
    city: City, uv_index: float | None, date: str
) -> ClassifiedAlert | None:
    if uv_index is None or uv_index < UV_EXTREME:
        return None

    active_from, active_until = _day_window(date)
    return ClassifiedAlert(
        id=f"uv-{city.region}-{date}",
        title=f"Extreme UV Alert - {city.name}",
        message=(
            f"UV Index of {round(uv_index)} expected on {_display_date(active_from)}. "
            "High risk of sunburn for light-colored dogs and those with thin coats."
        ),
        region=city.region,
        severity="WARNING",
        type="OTHER",
        active_from=active_from,
        active_until=active_until,
        source=SOURCE_OPEN_METEO,
        confidence=CONFIDENCE_HIGH,
        guidance=list(UV_GUIDANCE),
        external_id=f"open-meteo-uv-{city.region}-{date}",
    )


def alerts_for_city(city: City, days: list[ForecastDay]) -> list[ClassifiedAlert]:
    alerts: list[ClassifiedAlert] = []
    for day in days:
        heat_alert = generate_heatwave_alert(city, day.max_temp, day.date)
        if heat_alert:
            alerts.append(heat_alert)
        uv_alert = generate_uv_alert(city, day.uv_index, day.date)
        if uv_alert:
            alerts.append(uv_alert)
    return alerts


def parse_forecast(payload: Any) -> list[ForecastDay]:
    """Turn an Open-Meteo ``daily`` block into per-day records."""
    if not isinstance(payload, dict):
        return []
    daily = payload.get("daily") or {}
    dates = daily.get("time") or []
    max_temps = daily.get("temperature_2m_max") or []
    uv_values = daily.get("uv_index_max") or []

    days: list[ForecastDay] = []
    for index, day in enumerate(dates):
        max_temp = max_temps[index] if index < len(max_temps) else None
        if not day or max_temp is None:
            continue
        uv_index = uv_values[index] if index < len(uv_values) else None
        try:
            date_type.fromisoformat(str(day)[:10])
        except ValueError:
            logger.warning("Skipping forecast day with invalid date: %s", day)
            continue
        days.append(
            ForecastDay(
                date=str(day),
                max_temp=float(max_temp),
                uv_index=float(uv_index) if uv_index is not None else None,
            )
        )
    return days


def forecast_url(base_url: str, city: City, forecast_days: int = 4) -> str:
    params = {
        "latitude": city.lat,
        "longitude": city.lon,
        "daily": DAILY_FIELDS,
        "timezone": FORECAST_TIMEZONE,
        "forecast_days": forecast_days,
    }
    return f"{base_url}?{urllib.parse.urlencode(params, safe=',')}"
