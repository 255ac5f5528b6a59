"""CLI entry point: run the listing pipeline over saved page captures."""

import argparse
import logging
import sys
from pathlib import Path

from src.core.config import Settings
from src.pipeline.metrics import MetricsStore
from src.pipeline.orchestrator import ListingPipeline, export_batch_json


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Listing extraction - turn scraped HTML/markdown into validated job records",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- extract subcommand ---
    extract_parser = subparsers.add_parser("extract", help="Extract listings from saved captures")
    extract_parser.add_argument("--html", help="Path to an HTML capture")
    extract_parser.add_argument("--markdown", help="Path to a markdown capture")
    extract_parser.add_argument(
        "--site",
        default="generic",
        help="Site id used to pick the selector policy (default: generic)",
    )
    extract_parser.add_argument(
        "--config",
        help="Path to settings YAML file (defaults are used when omitted)",
    )
    extract_parser.add_argument(
        "--report",
        action="store_true",
        help="Log a quality report after the batch",
    )
    extract_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args(argv)
    if not args.html and not args.markdown:
        parser.error("extract needs --html and/or --markdown")
    return args


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _read(path: str | None) -> str:
    if not path:
        return ""
    file = Path(path)
    if not file.exists():
        msg = f"Input file not found: {file}"
        raise FileNotFoundError(msg)
    return file.read_text(encoding="utf-8", errors="replace")


def cmd_extract(args: argparse.Namespace) -> None:
    """Handle extract subcommand."""
    settings = Settings.from_yaml(args.config) if args.config else Settings()
    store = MetricsStore(settings.metrics)
    pipeline = ListingPipeline(settings, metrics_store=store)

    result = pipeline.run(_read(args.html), _read(args.markdown), args.site)
    print(export_batch_json(result))

    if args.report:
        store.log_report()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        cmd_extract(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
