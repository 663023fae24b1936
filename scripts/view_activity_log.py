#!/usr/bin/env python3
"""
View the activity log, newest first.

Usage:
    python3 scripts/view_activity_log.py [--page N] [--limit N]
        [--search TEXT] [--action ACTION] [--start ISO] [--end ISO]
        [--verify-chain]
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

W = 100


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="View the activity log.")
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--limit", type=int, default=20)
    parser.add_argument("--search", default=None)
    parser.add_argument("--action", default=None)
    parser.add_argument("--start", type=datetime.fromisoformat, default=None)
    parser.add_argument("--end", type=datetime.fromisoformat, default=None)
    parser.add_argument("--verify-chain", action="store_true")
    args = parser.parse_args(argv)

    from warehouse_kernel.db.engine import session_scope
    from warehouse_kernel.exceptions import WarehouseKernelError
    from warehouse_kernel.selectors.audit_log_selector import AuditLogSelector
    from warehouse_kernel.services.auditor_service import AuditorService
    from warehouse_services.bootstrap import bootstrap

    try:
        bootstrap(args.config, create_schema=False)
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    with session_scope() as session:
        try:
            page = AuditLogSelector(session).list_entries(
                page=args.page,
                limit=args.limit,
                start=args.start,
                end=args.end,
                search=args.search,
                action=args.action,
            )
        except (WarehouseKernelError, ValueError) as exc:
            print(f"  ERROR: {exc}", file=sys.stderr)
            return 2

        print()
        print("=" * W)
        print(
            f"  ACTIVITY LOG  page {page.page}/{max(page.total_pages, 1)}"
            f"  ({page.total} entries)"
        )
        print("=" * W)
        for entry in page.entries:
            qty = "" if entry.quantity is None else f"{entry.quantity:>6}"
            print(
                f"  {entry.folio}  #{entry.seq:<5} {entry.occurred_at:%Y-%m-%d %H:%M}"
                f"  {entry.action:<28} {qty:>6}"
            )
            print(f"      {entry.description}")
        print("=" * W)

        if args.verify_chain:
            try:
                AuditorService(session).validate_chain()
            except WarehouseKernelError as exc:
                print(f"  CHAIN BROKEN: {exc}", file=sys.stderr)
                return 3
            print("  Audit chain verified.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
