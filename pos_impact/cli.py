"""
Command line entry point - run the batch once on one sales export.

Usage:
    pos-impact run "2024-2025 report consolidated.csv"
    pos-impact run report.csv --format xlsx --on-parse-error quarantine
    pos-impact run report.csv --closure-date 2025-04-01 --post-closure-end 2025-07-31
"""
import argparse
import logging
import os
import sys
from datetime import date, datetime
from typing import Optional, Sequence

from pos_impact.etl.config import Config, ERROR_POLICIES
from pos_impact.etl.pipeline import ETLPipeline


def _iso_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pos-impact",
        description="Clean a POS sales export and label it with competitor-event periods",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the batch once on a sales export")
    run.add_argument("file", help="Path to the CSV or XLSX export")
    run.add_argument(
        "--format",
        dest="target_format",
        choices=["csv", "xlsx", "txt"],
        default="csv",
        help="Output format (default: csv, the cleaned dataset)"
    )
    run.add_argument(
        "--output-dir",
        default=Config.OUTPUT_FOLDER,
        help=f"Directory for the output file (default: {Config.OUTPUT_FOLDER})"
    )
    run.add_argument("--closure-date", type=_iso_date, default=None,
                     help="First Post-Closure day (YYYY-MM-DD)")
    run.add_argument("--post-closure-end", type=_iso_date, default=None,
                     help="Last Post-Closure day (YYYY-MM-DD)")
    run.add_argument("--on-parse-error", choices=ERROR_POLICIES, default=None,
                     help="Fail the batch or quarantine unparseable rows")
    run.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    return parser


def run_batch(args: argparse.Namespace) -> int:
    file_type = os.path.splitext(args.file)[1].lstrip('.').lower()
    if file_type not in Config.ALLOWED_EXTENSIONS:
        print(f"Unsupported file type: {args.file}", file=sys.stderr)
        return 1

    try:
        pipeline = ETLPipeline(
            closure_date=args.closure_date,
            post_closure_end=args.post_closure_end,
            on_parse_error=args.on_parse_error,
        )
    except ValueError as e:
        logging.error(f"Invalid run configuration: {e}")
        print(f"FAILED: {e}", file=sys.stderr)
        return 1

    final_result = None
    for p, msg, res in pipeline.process(args.file, file_type, args.target_format):
        if res:
            final_result = res
        else:
            print(f"[{p:>3}%] {msg}")

    if not final_result or not final_result["success"]:
        error_msg = final_result.get("error", "Unknown ETL error") if final_result else "Pipeline failed"
        print(f"FAILED: {error_msg}", file=sys.stderr)
        return 1

    os.makedirs(args.output_dir, exist_ok=True)
    stem = os.path.splitext(os.path.basename(args.file))[0].replace(' ', '_')
    out_path = os.path.join(args.output_dir, f"cleaned_{stem}.{args.target_format}")
    with open(out_path, 'wb') as f:
        f.write(final_result["output_buffer"].getvalue())

    stats = final_result["stats"]
    validation = stats["validation"]
    print(f"Wrote {stats['total_rows']} records to {out_path}")
    print(f"Date range: {validation['min_date']} to {validation['max_date']}")
    print(f"Duplicate (date, bill_no) pairs: {validation['duplicate_date_billno_count']}")
    print(f"Zero or negative amounts: {validation['zero_or_negative_count']}")
    if stats["rejected_rows"]:
        print(f"Rejected rows: {stats['rejected_rows']}")
    logging.info(f"Output written: {out_path}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        filename=Config.LOG_FILE,
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s: %(message)s'
    )
    logging.info(f"pos-impact {args.command} {getattr(args, 'file', '')}")

    return run_batch(args)


if __name__ == "__main__":
    sys.exit(main())
