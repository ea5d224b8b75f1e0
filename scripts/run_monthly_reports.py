"""
Generate monthly care-plan reports.

Run on the 1st of each month (e.g. cron `0 9 1 * *`) to produce last month's
report for every client with a care plan, or pass --client-id/--month/--year to
regenerate a single report.
"""

import argparse
import sys
from pathlib import Path
from uuid import UUID

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logging_config import configure_logging
from config.settings import load_settings
from services.context import build_context
from services.report_service import generate_monthly_report, generate_reports_for_previous_month


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Generate monthly client reports")
    parser.add_argument("--client-id", type=UUID, help="Generate one report for this client")
    parser.add_argument("--month", type=int, help="Month (1-12), with --client-id")
    parser.add_argument("--year", type=int, help="Year, with --client-id")
    args = parser.parse_args()

    settings = load_settings()
    configure_logging(settings.log_level)
    ctx = build_context(settings)

    if args.client_id:
        if args.month is None or args.year is None:
            parser.error("--month and --year are required with --client-id")
        report = generate_monthly_report(ctx, args.client_id, args.month, args.year)
        print(f"Report {report.report_id} stored at {report.document_path}")
        return 0

    summary = generate_reports_for_previous_month(ctx)
    print(f"Period: {summary.period.label}")
    print(f"  Generated: {len(summary.generated)}")
    print(f"  Failed:    {len(summary.failed)}")
    for client_id in summary.failed:
        print(f"    {client_id}")
    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(main())
