"""
CLI entry point for Scan Reconcile.

Usage:
    python -m nebula.scan_reconcile load manifest.csv
    python -m nebula.scan_reconcile scan 123-1 123-2 0077
    python -m nebula.scan_reconcile scan < codes.txt
    python -m nebula.scan_reconcile status
    python -m nebula.scan_reconcile report --plate ABC123 --sender ACME --xlsx report.xlsx
    python -m nebula.scan_reconcile reset --yes

Progress is kept in --state-dir between invocations, so an interrupted
unload picks up where it stopped.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import load_config
from .errors import ManifestError, ReportError
from .gateway import ScanGateway
from .manifest_loader import load_manifest_file
from .matcher import summarize_outcomes
from .models import ScanStatus
from .report import (
    ReportHeader,
    display_order,
    export_csv,
    format_console,
    generate_report_filename,
    global_counter,
    product_progress,
    require_header_fields,
)
from .session import ReconciliationSession
from .sheet_writer import save_report_workbook
from .stores import FileSnapshotStore

DEFAULT_STATE_DIR = ".scan_state"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scan_reconcile",
        description="Scan Reconcile - Check scanned units against an unload manifest",
    )

    parser.add_argument(
        "--state-dir",
        default=DEFAULT_STATE_DIR,
        metavar="DIR",
        help=f"Directory holding the saved session (default: {DEFAULT_STATE_DIR})",
    )

    parser.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="Scan config file (default: module's scan_config.json)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log each scan decision",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    load = sub.add_parser("load", help="Load a manifest (CSV or XLSX), replacing current progress")
    load.add_argument("manifest", metavar="FILE")

    scan = sub.add_parser("scan", help="Scan codes given as arguments, or one per stdin line")
    scan.add_argument("codes", nargs="*", metavar="CODE")

    sub.add_parser("status", help="Show per-product progress")

    report = sub.add_parser("report", help="Print or export the unload report")
    report.add_argument("--plate", default="", help="Vehicle plate")
    report.add_argument("--sender", default="", help="Sender / shipper")
    report.add_argument("--date", default=None, help="Unload date (default: today)")
    report.add_argument("--xlsx", metavar="FILE", nargs="?", const="", help="Write XLSX report")
    report.add_argument("--csv", metavar="FILE", help="Write CSV report")
    report.add_argument("--quiet", "-q", action="store_true", help="Suppress console output")

    reset = sub.add_parser("reset", help="Finish the unload and delete all saved progress")
    reset.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    return parser


def _cmd_load(gateway: ScanGateway, args) -> int:
    rows = load_manifest_file(args.manifest)
    persisted = gateway.load_manifest(rows)
    print(f"Loaded manifest from {args.manifest}")
    print(gateway.read(global_counter))
    if not persisted:
        print("Warning: progress could not be saved", file=sys.stderr)
    return 0


def _cmd_scan(gateway: ScanGateway, args) -> int:
    codes = args.codes or (line.strip() for line in sys.stdin)
    results = []
    for code in codes:
        if not code:
            continue
        result = gateway.submit(code)
        results.append(result)
        marker = "OK " if result.status == ScanStatus.ACCEPTED else "ERR"
        print(f"[{marker}] {code:<20} {result.status.value:<28} {result.reason}")
        if not result.persisted:
            print("Warning: progress could not be saved", file=sys.stderr)

    summary = summarize_outcomes(results)
    print(f"\n{summary['accepted']} accepted, {summary['rejected']} rejected")
    print(gateway.read(global_counter))
    return 0 if summary["rejected"] == 0 else 2


def _cmd_status(gateway: ScanGateway, args) -> int:
    progress = gateway.read(product_progress)
    if not progress:
        print("No manifest loaded.")
        return 0

    last = gateway.last_result
    last_code = last.product.primary_code if last and last.product else None
    for p in display_order(progress, last_code):
        print(f"{p.code:<15} {p.scanned:>4} / {p.expected:<4} {p.status:<9} {p.city}")
    print(gateway.read(global_counter))
    return 0


def _cmd_report(gateway: ScanGateway, args) -> int:
    header = ReportHeader(plate=args.plate, sender=args.sender, date=args.date)
    exporting = args.xlsx is not None or args.csv
    if exporting:
        require_header_fields(header)
    payload = gateway.report(header)

    if not args.quiet:
        print(format_console(payload))

    if args.xlsx is not None:
        xlsx_path = Path(args.xlsx or generate_report_filename())
        save_report_workbook(payload, xlsx_path)
        if not args.quiet:
            print(f"\nXLSX exported to: {xlsx_path}")

    if args.csv:
        csv_path = Path(args.csv)
        with open(csv_path, "w", newline="") as f:
            export_csv(payload, output=f)
        if not args.quiet:
            print(f"\nCSV exported to: {csv_path}")
    return 0


def _cmd_reset(gateway: ScanGateway, args) -> int:
    if not args.yes:
        answer = input("This deletes all scanned data. Continue? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Cancelled.")
            return 0
    gateway.reset()
    print("Process finished. Saved data removed.")
    return 0


COMMANDS = {
    "load": _cmd_load,
    "scan": _cmd_scan,
    "status": _cmd_status,
    "report": _cmd_report,
    "reset": _cmd_reset,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        session = ReconciliationSession.restore(FileSnapshotStore(args.state_dir), config)
        return COMMANDS[args.command](ScanGateway(session), args)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ManifestError as e:
        print(f"Error: manifest rejected - {e}", file=sys.stderr)
        return 1
    except ReportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
