"""
CLI entry point for the weather reconciliation pipeline.

Usage:
    python -m retail_weather reconcile --config retail_weather.json
    python -m retail_weather reconcile --sales orders.csv \\
        --temperature temperature.csv --humidity humidity.csv \\
        --description description.csv --output sales_weather.csv
    python -m retail_weather reconcile --strict-geo --fallback STATE,GLOBAL
    python -m retail_weather init-config retail_weather.json
"""

import argparse
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from retail_weather.config.models import RetailWeatherConfig
from retail_weather.config.settings import create_default_config, load_config_with_fallback
from retail_weather.reconciliation.pipeline import ReconciliationPipeline
from retail_weather.shared.exceptions import RetailWeatherError
from retail_weather.shared.logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> RetailWeatherConfig:
    """
    Load the config file (or defaults) and apply command-line overrides.

    Raises:
        ValueError: If the resulting configuration is invalid
    """
    config = load_config_with_fallback(args.config)
    data: dict[str, Any] = config.model_dump(mode="json")

    for name in ("sales", "temperature", "humidity", "description", "output"):
        value = getattr(args, name)
        if value:
            data["paths"][name] = value

    if args.strict_geo:
        data["reconciliation"]["strict_geo"] = True
    if args.fallback is not None:
        tiers = [t.strip().upper() for t in args.fallback.split(",") if t.strip()]
        data["reconciliation"]["fallback_order"] = [t for t in tiers if t != "NONE"]
    if args.workers is not None:
        data["performance"]["max_workers"] = args.workers
        data["performance"]["parallel"] = args.workers > 1
    if args.log_level:
        data["log_level"] = args.log_level

    return RetailWeatherConfig(**data)


def cmd_reconcile(args: argparse.Namespace) -> int:
    """Run the pipeline and print the run summary as JSON."""
    try:
        config = build_config(args)
    except (ValidationError, ValueError, FileNotFoundError) as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(config.log_level)

    try:
        result = ReconciliationPipeline(config).run_from_paths()
    except RetailWeatherError as e:
        logger.error(f"Reconciliation failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result.summary(), indent=2))
    return 0


def cmd_init_config(args: argparse.Namespace) -> int:
    """Write a default configuration file."""
    create_default_config(args.path)
    print(f"Wrote default configuration to {args.path}")
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile retail sales records with daily weather observations",
        prog="python -m retail_weather",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # ===== RECONCILE SUBCOMMAND =====
    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Attach weather context to sales records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with a config file
  python -m retail_weather reconcile --config retail_weather.json

  # Abort on the first city missing from the sales geography
  python -m retail_weather reconcile --strict-geo

  # Skip the region tier
  python -m retail_weather reconcile --fallback STATE,GLOBAL
        """,
    )
    reconcile_parser.add_argument("--config", type=str, help="Path to JSON config file")
    reconcile_parser.add_argument("--sales", type=str, help="Orders CSV")
    reconcile_parser.add_argument("--temperature", type=str, help="Temperature CSV")
    reconcile_parser.add_argument("--humidity", type=str, help="Humidity CSV")
    reconcile_parser.add_argument("--description", type=str, help="Weather description CSV")
    reconcile_parser.add_argument("--output", type=str, help="Enriched records CSV")
    reconcile_parser.add_argument(
        "--strict-geo",
        action="store_true",
        help="Abort on unknown cities instead of marking attributes MISSING",
    )
    reconcile_parser.add_argument(
        "--fallback",
        type=str,
        help="Comma-separated fallback tiers (STATE,REGION,GLOBAL or NONE)",
    )
    reconcile_parser.add_argument("--workers", type=int, help="Worker threads")
    reconcile_parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    # ===== INIT-CONFIG SUBCOMMAND =====
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument("path", type=str, help="Destination path")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entry point - routes to subcommands.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = parse_args(argv)

    if args.command == "reconcile":
        return cmd_reconcile(args)
    elif args.command == "init-config":
        return cmd_init_config(args)
    else:
        print("ERROR: No command specified. Use --help for usage information.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
