"""Flask JSON API for curated and aggregated alerts."""

from __future__ import annotations

import logging
from typing import Optional

from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from ponnect_alerts.aggregator import (
    GOV_SOURCE_LABEL,
    WEATHER_SOURCE_LABEL,
    AggregationResult,
    AlertAggregator,
    build_gov_aggregator,
    build_weather_aggregator,
    merge_alerts,
)
from ponnect_alerts.api.auth import admin_required, get_current_user, login_required
from ponnect_alerts.config import AppConfig, configure_logging, load_config, parse_bool
from ponnect_alerts.errors import PonnectAlertsError, ValidationError
from ponnect_alerts.models.schemas import REGION_ALL, STATE_REGIONS
from ponnect_alerts.storage.alert_store import AlertStore

logger = logging.getLogger(__name__)

alerts_bp = Blueprint("alerts", __name__)


def _store() -> AlertStore:
    return current_app.config["ALERT_STORE"]


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Invalid request body")
    return body


def _region_arg() -> Optional[str]:
    region = (request.args.get("region") or "").strip().upper()
    if not region or region == REGION_ALL:
        return None
    if region not in STATE_REGIONS:
        raise ValidationError("Invalid region")
    return region


def _aggregated_response(result: AggregationResult, source_label: str):
    return jsonify(
        {
            "success": True,
            "data": [alert.to_dict() for alert in result.alerts],
            "source": source_label,
            "lastUpdated": result.last_updated.isoformat(),
            "cached": result.cached,
        }
    )


@alerts_bp.get("/health")
def health():
    return jsonify({"status": "ok"})


@alerts_bp.get("/alerts")
def list_alerts():
    alerts = _store().list_active(
        region=_region_arg(),
        alert_type=request.args.get("type"),
        active_only=request.args.get("active") != "false",
    )
    return jsonify({"success": True, "data": alerts})


@alerts_bp.post("/alerts")
@admin_required
def create_alert():
    alert = _store().create(_json_body())
    return jsonify({"success": True, "data": alert}), 201


@alerts_bp.get("/alerts/gov")
def gov_alerts():
    aggregator: AlertAggregator = current_app.config["GOV_AGGREGATOR"]
    result = aggregator.get_alerts(
        region=_region_arg(),
        force_refresh=parse_bool(request.args.get("refresh"), False),
    )
    return _aggregated_response(result, GOV_SOURCE_LABEL)


@alerts_bp.get("/alerts/external")
def external_alerts():
    aggregator: AlertAggregator = current_app.config["WEATHER_AGGREGATOR"]
    result = aggregator.get_alerts(
        region=_region_arg(),
        force_refresh=parse_bool(request.args.get("refresh"), False),
    )
    return _aggregated_response(result, WEATHER_SOURCE_LABEL)


@alerts_bp.get("/alerts/combined")
def combined_alerts():
    region = _region_arg()
    persisted = _store().list_active(region=region)
    gov = current_app.config["GOV_AGGREGATOR"].get_alerts(region=region)
    weather = current_app.config["WEATHER_AGGREGATOR"].get_alerts(region=region)
    data = merge_alerts(persisted, gov.alerts + weather.alerts)
    return jsonify({"success": True, "data": data})


@alerts_bp.get("/alerts/<alert_id>")
def get_alert(alert_id: str):
    return jsonify({"success": True, "data": _store().get(alert_id)})


@alerts_bp.put("/alerts/<alert_id>")
@admin_required
def update_alert(alert_id: str):
    alert = _store().update(alert_id, _json_body())
    return jsonify({"success": True, "data": alert})


@alerts_bp.delete("/alerts/<alert_id>")
@admin_required
def delete_alert(alert_id: str):
    _store().delete(alert_id)
    return jsonify({"success": True, "message": "Alert deleted"})


@alerts_bp.post("/alerts/<alert_id>/save")
@login_required
def toggle_saved_alert(alert_id: str):
    user = get_current_user()
    saved = _store().toggle_saved(user["id"], alert_id)
    return jsonify(
        {
            "success": True,
            "saved": saved,
            "message": "Alert saved" if saved else "Alert unsaved",
        }
    )


@alerts_bp.get("/alerts/<alert_id>/save")
def saved_status(alert_id: str):
    user = get_current_user()
    if user is None:
        return jsonify({"success": True, "saved": False})
    return jsonify({"success": True, "saved": _store().is_saved(user["id"], alert_id)})


def _handle_app_error(exc: PonnectAlertsError):
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.__cause__ or exc)
    return jsonify({"success": False, "error": exc.message}), exc.status_code


def _handle_http_error(exc: HTTPException):
    return jsonify({"success": False, "error": exc.description}), exc.code


def _handle_unexpected(exc: Exception):
    logger.exception("Unhandled error")
    return jsonify({"success": False, "error": "Internal server error"}), 500


def create_app(
    config: AppConfig | None = None,
    *,
    store: AlertStore | None = None,
    gov_aggregator: AlertAggregator | None = None,
    weather_aggregator: AlertAggregator | None = None,
) -> Flask:
    config = config or load_config()
    app = Flask(__name__)
    app.config["PONNECT_CONFIG"] = config
    app.config["ALERT_STORE"] = store or AlertStore.from_url(config.database_url)
    app.config["GOV_AGGREGATOR"] = gov_aggregator or build_gov_aggregator(config)
    app.config["WEATHER_AGGREGATOR"] = weather_aggregator or build_weather_aggregator(
        config
    )

    app.register_blueprint(alerts_bp)
    app.register_error_handler(PonnectAlertsError, _handle_app_error)
    app.register_error_handler(HTTPException, _handle_http_error)
    app.register_error_handler(Exception, _handle_unexpected)
    return app


def main() -> None:
    config = load_config()
    configure_logging(config.log_level)
    app = create_app(config)
    app.run(host=config.api_host, port=config.api_port)


if __name__ == "__main__":
    main()
