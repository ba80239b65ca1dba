# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from parcelsync.app import (
    apply_webhook_payload,
    list_cities,
    run_reconciliation_pass,
    run_scheduled_reconciliation,
    track_shipments,
)
from parcelsync.config import ConfigurationError, configure_logging
from parcelsync.domain.reconciliation import PassOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from parcelsync.domain.model import TrackingSnapshot

log = logging.getLogger(__name__)

STDIN_MARKER = "-"


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keep shipment statuses in sync with the courier")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("reconcile", help="Run one reconciliation pass")

    schedule = subparsers.add_parser("schedule", help="Reconcile on a fixed interval")
    schedule.add_argument(
        "--interval",
        type=float,
        help="Seconds between passes (defaults to RECONCILE_INTERVAL_SECONDS or 60)",
    )

    subparsers.add_parser("cities", help="List the courier's city directory")

    track = subparsers.add_parser("track", help="Look up tracking numbers without storing")
    track.add_argument("numbers", nargs="+", help="Tracking numbers to look up")

    webhook = subparsers.add_parser("webhook", help="Apply a courier status push from JSON")
    webhook.add_argument(
        "file",
        nargs="?",
        default=STDIN_MARKER,
        help="JSON file with the webhook body, or '-' for stdin (default)",
    )
    webhook.add_argument(
        "--no-notify",
        action="store_true",
        help="Update statuses without sending notifications",
    )

    return parser.parse_args(list(argv))


def _read_payload(source: str) -> dict[str, object]:
    text = sys.stdin.read() if source == STDIN_MARKER else Path(source).read_text(encoding="utf-8")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Webhook body is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Webhook body must be a JSON object")
    return payload


def _format_snapshot(snapshot: TrackingSnapshot) -> str:
    activity = snapshot.activity_at.isoformat() if snapshot.activity_at else "-"
    return f"{snapshot.tracking_number}\t{snapshot.status}\t{activity}"


def _run_command(args: argparse.Namespace) -> int:
    if args.command == "reconcile":
        summary = run_reconciliation_pass()
        if summary.outcome is PassOutcome.ABORTED:
            log.error("Reconciliation aborted: %s", summary.error)
            return 1
        return 0

    if args.command == "schedule":
        run_scheduled_reconciliation(args.interval)
        return 0

    if args.command == "cities":
        for city in sorted(list_cities(), key=lambda entry: entry.name):
            print(f"{city.code}\t{city.name}")
        return 0

    if args.command == "track":
        numbers = [number.strip() for number in args.numbers if number.strip()]
        snapshots = track_shipments(numbers)
        for snapshot in snapshots:
            print(_format_snapshot(snapshot))
        missing = set(numbers) - {snapshot.tracking_number for snapshot in snapshots}
        for number in sorted(missing):
            log.warning("No tracking data for %s", number)
        return 0

    if args.command == "webhook":
        result = apply_webhook_payload(_read_payload(args.file), notify=not args.no_notify)
        print(json.dumps(asdict(result), indent=2))
        return 0

    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        exit_code = _run_command(parsed_args)
    except (ConfigurationError, ValueError, OSError):
        log.exception("Invalid input or configuration")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
