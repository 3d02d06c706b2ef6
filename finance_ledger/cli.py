"""Command-line interface for the Finance Ledger.

Usage:
  finance-ledger serve --port 5000
  finance-ledger static --dist fina/dist
  finance-ledger report --input ledger.csv --json summary.json
"""

from __future__ import annotations

import argparse
from typing import List, Optional

from .config import AppConfig
from .data_loader import load_file, normalize_rows
from .logging_setup import configure_logging, get_logger
from .reports import build_summary, format_text_report, save_json

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="finance-ledger", description="Financial record ledger")
    p.add_argument("--log-level", help="Logging level (default: configured log_level or INFO)")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the web application")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, help="Port (default: PORT or 3000)")
    serve.add_argument("--config", "-c", help="Path to JSON config")
    serve.add_argument("--debug", action="store_true")

    static = sub.add_parser("static", help="Serve a pre-built front-end directory")
    static.add_argument("--dist", help="Asset directory (default: FINANCE_LEDGER_STATIC_DIR)")
    static.add_argument("--port", type=int, help="Port (default: PORT or 3000)")

    report = sub.add_parser("report", help="Summarize a CSV or Excel file")
    report.add_argument("--input", "-i", nargs="+", required=True, help="File(s) to load")
    report.add_argument("--json", dest="json_out", help="Write summary JSON to path")
    return p.parse_args(argv)


def _report(args: argparse.Namespace) -> int:
    records = []
    for path in args.input:
        try:
            rows = load_file(path)
        except (OSError, ValueError) as exc:
            logger.error("Cannot read %s: %s", path, exc)
            return 1
        drafts = normalize_rows(rows)
        if len(drafts) < len(rows):
            logger.info("%s: dropped %d row(s) missing name, date or amount", path, len(rows) - len(drafts))
        records.extend(d.as_dict() for d in drafts)

    summary = build_summary(records)
    print(format_text_report(summary))

    if args.json_out:
        save_json(summary, args.json_out)
        print(f"\nSaved JSON summary to: {args.json_out}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    cfg = AppConfig.load(getattr(args, "config", None))
    configure_logging(args.log_level, cfg.log_level)

    if args.command == "report":
        return _report(args)
    if args.command == "static":
        from .server import main as serve_static

        return serve_static(dist_dir=args.dist, port=args.port, log_level=args.log_level)

    from .webapp import create_app

    app = create_app(cfg)
    if not cfg.admin_enabled:
        logger.warning("No admin password configured; only guest sign-in is available")
    port = args.port or cfg.port
    logger.info("Serving web application on %s:%d", args.host, port)
    app.run(host=args.host, port=port, debug=args.debug)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
