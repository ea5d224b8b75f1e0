"""
Report records that slipped through the check-then-insert race windows.

Checks for:
- non-deleted leads sharing an email/company fingerprint
- proposals sharing a proposal number
- duplicate clients created for the same lead identity
- leads marked converted without client/project links

Read-only: nothing is modified. Exits 1 when anything is found.
"""

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logging_config import configure_logging
from config.settings import load_settings
from services.context import build_context
from services.reconciliation_service import run_reconciliation


def _print_groups(title: str, groups: dict) -> None:
    print(f"\n{title}: {len(groups)}")
    for key, ids in groups.items():
        print(f"  {key}: {', '.join(ids)}")


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Check leads, proposals and clients for duplicates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Human-readable summary
  python reconcile_records.py

  # Machine-readable output
  python reconcile_records.py --json
        """
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args()

    settings = load_settings()
    configure_logging(settings.log_level)
    report = run_reconciliation(build_context(settings))

    if args.json:
        print(json.dumps(asdict(report), indent=2))
    else:
        print("=" * 50)
        print("RECONCILIATION REPORT")
        print("=" * 50)
        _print_groups("Duplicate lead fingerprints", report.duplicate_fingerprints)
        _print_groups("Duplicate proposal numbers", report.duplicate_proposal_numbers)
        _print_groups("Duplicate clients", report.duplicate_clients)
        print(f"\nConverted leads without links: {len(report.converted_without_links)}")
        for lead_id in report.converted_without_links:
            print(f"  {lead_id}")
        print("\n" + ("All clear." if report.is_clean else "Issues found."))

    return 0 if report.is_clean else 1


if __name__ == "__main__":
    sys.exit(main())
