"""Main entry point for the application."""

import argparse
import json
import sys

from pollution_report.api.auth import AuthError
from pollution_report.etl.pipeline import ReportPipeline
from pollution_report.utils.logger import setup_logger

logger = setup_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Most polluted city per country")
    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh = subparsers.add_parser("refresh", help="Fetch readings and rebuild the cached report")
    refresh.add_argument(
        "--countries",
        nargs="+",
        help="ISO country codes to fetch (default: configured set)",
        default=None,
    )

    subparsers.add_parser("show", help="Print the cached report as JSON")
    return parser


def main(argv=None) -> int:
    """Main function."""
    args = build_parser().parse_args(argv)

    try:
        with ReportPipeline() as pipeline:
            if args.command == "refresh":
                report = pipeline.refresh(args.countries)
                logger.info(f"Refresh completed: {report.count} countries")
                print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
                return 0

            report = pipeline.read_report()
            if report is None:
                logger.warning("No cached report, run 'refresh' first")
                return 1
            print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
            return 0
    except AuthError as e:
        logger.error(f"Authentication failed: {e}")
    except Exception as e:
        logger.error(f"{type(e).__name__}: {e}", exc_info=True)

    print(json.dumps({"error": "internal_error"}))
    return 1


if __name__ == "__main__":
    sys.exit(main())
