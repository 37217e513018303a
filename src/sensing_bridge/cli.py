"""CLI entry point for the sensing bridge collector."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from .config import load_config
from .service import export_latest, run_service


def setup_logging(debug: bool = False, level_name: str = "INFO") -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if debug else getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Sensing Bridge - multi-source scan collector"
    )
    parser.add_argument(
        "--config",
        required=True,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--export",
        action="store_true",
        help="Archive and export the latest session instead of recording",
    )

    args = parser.parse_args(argv)

    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: Configuration file not found: {config_path}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(str(config_path))
    except (ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(args.debug, config.logging.level)

    if args.export:
        outcome = export_latest(config)
        print(outcome.message)
        sys.exit(0 if outcome.ok else 1)

    try:
        asyncio.run(run_service(config))
    except KeyboardInterrupt:
        print("\nCollector stopped by user")
    except Exception as e:
        print(f"Collector failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
