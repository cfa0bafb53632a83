"""Command line entry point.

Usage:
    ledger-stress
    BASE_URL=http://api:9999 ledger-stress --summary results/summary.json
    python -m ledger_stress --base-url http://localhost:9999 --timeout 600
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

import structlog

from ledger_stress.config import Settings
from ledger_stress.errors import ConfigurationError
from ledger_stress.report import build_summary, print_summary, write_artifacts
from ledger_stress.runner import StressTestRunner
from ledger_stress.shared.logging import setup_logging

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_CHECKS_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Stress test and consistency checks for the ledger API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="Target API base URL (default: $BASE_URL or http://localhost:9999).",
    )
    parser.add_argument(
        "--report",
        type=str,
        default=None,
        help="Path of the HTML report (default: stress-test-report.html).",
    )
    parser.add_argument(
        "--summary",
        type=str,
        default=None,
        help="Also write the JSON summary to this file path.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Stop the whole run after this many seconds.",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Log level override.")
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    overrides = {
        "base_url": args.base_url,
        "report_path": args.report,
        "summary_path": args.summary,
        "log_level": args.log_level,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


async def async_main(args: argparse.Namespace) -> int:
    try:
        cfg = load_settings(args)
        setup_logging(cfg.log_level, json_logs=cfg.log_json)
    except ValueError as exc:
        # pydantic.ValidationError is a ValueError
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    runner = StressTestRunner(cfg)
    try:
        result = await runner.run(timeout=args.timeout)
    except ConfigurationError as exc:
        logger.error("run_aborted", error=str(exc))
        return EXIT_CONFIG_ERROR

    summary = build_summary(result)
    print_summary(summary)
    print(json.dumps(summary, indent=2, default=str))
    write_artifacts(summary, cfg.report_path, cfg.summary_path)
    return EXIT_OK if result.passed else EXIT_CHECKS_FAILED


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    sys.exit(asyncio.run(async_main(args)))


if __name__ == "__main__":
    main()
