import argparse
from pathlib import Path

from ponnect_alerts.aggregator import (
    AlertAggregator,
    build_gov_aggregator,
    build_weather_aggregator,
    sort_alerts,
)
from ponnect_alerts.config import AppConfig, configure_logging, load_config
from ponnect_alerts.models.schemas import REGIONS, ClassifiedAlert
from ponnect_alerts.storage.csv_store import write_alerts_csv


def print_alerts(alerts: list[ClassifiedAlert]) -> None:
    if not alerts:
        print("No alerts generated.")
        return

    print(f"Alerts generated: {len(alerts)}")
    for alert in alerts:
        print(
            "ALERT | "
            f"{alert.severity} | "
            f"{alert.type} | "
            f"{alert.region} | "
            f"{alert.source} | "
            f"{alert.title}"
        )


def run_once(
    config: AppConfig,
    region: str | None = None,
    refresh: bool = False,
    output: Path | None = None,
    *,
    gov_aggregator: AlertAggregator | None = None,
    weather_aggregator: AlertAggregator | None = None,
) -> list[ClassifiedAlert]:
    gov_aggregator = gov_aggregator or build_gov_aggregator(config)
    weather_aggregator = weather_aggregator or build_weather_aggregator(config)

    gov = gov_aggregator.get_alerts(region=region, force_refresh=refresh)
    weather = weather_aggregator.get_alerts(region=region, force_refresh=refresh)
    print(
        f"Government feed alerts: {len(gov.alerts)} | "
        f"Weather alerts: {len(weather.alerts)}"
    )

    # The two families sort differently; re-sort the union by severity then recency.
    alerts = sort_alerts(gov.alerts + weather.alerts, newest_first=True)
    print_alerts(alerts)

    if output is not None:
        written = write_alerts_csv(output, alerts)
        print(f"Wrote {written} alerts to {output.resolve()}")
    return alerts


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch, classify and print dog-safety alerts once."
    )
    parser.add_argument(
        "--region",
        type=str.upper,
        choices=REGIONS,
        help="State code such as QLD; default all",
    )
    parser.add_argument(
        "--refresh", action="store_true", help="Ignore cached results"
    )
    parser.add_argument("--output", type=Path, help="Write alerts to this CSV file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    config = load_config()
    configure_logging(config.log_level)
    run_once(config, region=args.region, refresh=args.refresh, output=args.output)


if __name__ == "__main__":
    main()
