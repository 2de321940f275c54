#!/usr/bin/env python3
"""
Kostennote - Command Line Entry Point

Generates legal fee invoices (Kostennoten) from the case CSV.

Usage:
    kostennote --all                  Process all invoices
    kostennote --lf 3                 Single invoice by running number (Lf. Nr.)
    kostennote --lf 1,3-5,7           Several / ranges
    kostennote --all --no-stamp       Without letterhead

Exit codes: 0 = all invoices written (or usage shown), 1 = failures / no match
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from kostennote import __version__
from kostennote.batch import build_invoices, parse_lf_spec, run_batch, select_invoices
from kostennote.billing.records import read_case_records
from kostennote.core.config import load_config
from kostennote.core.errors import KostennoteError
from kostennote.core.paths import validate_paths
from kostennote.forms.invoice_generator import InvoiceRenderer
from kostennote.forms.letterhead import load_letterhead
from kostennote.logging_config import setup_logging

log = logging.getLogger("kostennote.cli")

BANNER = "═" * 64


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kostennote",
        description="Generate letterhead-branded fee invoices from the case CSV.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--all", action="store_true", help="process all invoices")
    mode.add_argument("--lf", metavar="SPEC",
                      help='running numbers: "3", "1,3,5", "1-3" or "1,3-5,7"')
    parser.add_argument("--no-stamp", action="store_true",
                        help="save PDFs WITHOUT stamping them onto the letterhead")
    parser.add_argument("--csv", help="input CSV (default from config)")
    parser.add_argument("--letterhead", help="letterhead PDF (default from config)")
    parser.add_argument("--output", help="output directory (default from config)")
    parser.add_argument("--config", help="JSON config override file")
    parser.add_argument("--workers", type=int, default=1,
                        help="invoices processed in parallel (default 1)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING ...")
    parser.add_argument("--json", action="store_true", help="print the batch report as JSON")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level=args.log_level)

    if not args.all and not args.lf:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
    except (OSError, json.JSONDecodeError) as e:
        log.error("Could not load config %s: %s", args.config, e)
        return 1
    gen = config["generator"]
    csv_path = args.csv or gen["input_csv"]
    letterhead_path = args.letterhead or gen["letterhead_pdf"]
    output_dir = args.output or gen["output_dir"]
    should_stamp = not args.no_stamp

    check = validate_paths()
    if not check["ok"]:
        for err in check["errors"]:
            log.warning("Path check: %s", err)
    for warning in check["warnings"]:
        log.debug("Path check: %s", warning)

    print(BANNER)
    print(f"  Kostennote v{__version__}")
    print(BANNER)
    print(f"  Input CSV:   {csv_path}")
    print(f"  Output Dir:  {output_dir}")
    print(f"  Stamp Mode:  {'ENABLED' if should_stamp else 'DISABLED'}")
    if not should_stamp:
        print("\n  WARNING: Stamp mode is DISABLED (--no-stamp). PDFs are saved without letterhead.")

    try:
        records, skipped = read_case_records(csv_path, gen.get("csv_separator", ";"))
    except KostennoteError as e:
        log.error("%s", e)
        return 1
    invoices = build_invoices(records, config)

    if args.all:
        selected = select_invoices(invoices)
    else:
        lf_numbers = parse_lf_spec(args.lf)
        selected = select_invoices(invoices, lf_numbers)
        if not selected:
            print(f'\nERROR: No invoices found matching "{args.lf}"\n')
            print("Available Lf. Nr.:")
            for inv in invoices:
                print(f'  - "{inv.lf_nr}" ({" & ".join(inv.last_names)})')
            return 1

    print(f"\n  Processing {len(selected)} of {len(invoices)} invoice(s)\n")

    letterhead = load_letterhead(letterhead_path) if should_stamp else None
    renderer = InvoiceRenderer(config)
    report = run_batch(selected, renderer, letterhead, output_dir,
                       should_stamp=should_stamp, workers=max(1, args.workers))
    report.skipped_rows = skipped

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(BANNER)
        print("  Processing Complete")
        print(BANNER)
        print(f"  Successful: {report.succeeded}")
        if report.failed:
            print(f"  Failed:     {report.failed}")
            for o in report.outcomes:
                if not o.ok:
                    print(f"    - Lf. Nr. {o.lf_nr} ({o.invoice_number}): {o.error.get('message', '')}")
        unstamped = sum(1 for o in report.outcomes if o.ok and not o.stamped)
        if should_stamp and unstamped:
            print(f"  Unstamped:  {unstamped}")
        if skipped:
            print(f"  Skipped rows (empty Nachname1): {skipped}")
        print(f"  Output dir: {output_dir}\n")

    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
