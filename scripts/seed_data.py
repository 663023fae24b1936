#!/usr/bin/env python3
"""
Seed the database with products, orders and one production batch.

Drops all tables, recreates them, creates three products and four orders a
minute apart, then registers a batch whose output is allocated oldest order
first and leaves a note on one order.  Prints the allocation summary of every batch item.

Usage:
    python3 scripts/seed_data.py [--config path/to/config.yaml]
"""

import argparse
import json
import sys
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--config", default=None, help="YAML config file")
    args = parser.parse_args(argv)

    from warehouse_kernel.db.engine import create_tables, drop_tables, session_scope
    from warehouse_kernel.domain.clock import DeterministicClock
    from warehouse_kernel.domain.dtos import BatchItemSpec, OrderLineSpec
    from warehouse_kernel.models.product import Product
    from warehouse_kernel.services.note_service import NoteService
    from warehouse_kernel.services.order_service import OrderService
    from warehouse_services.bootstrap import bootstrap

    clock = DeterministicClock(datetime(2025, 6, 15, 8, 0, 0, tzinfo=UTC))
    actor_id = uuid4()

    print()
    print("  [1/5] Connecting and recreating schema...")
    try:
        runtime = bootstrap(args.config, create_schema=False, clock=clock)
        drop_tables()
        create_tables()
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    print("  [2/5] Creating products...")
    product_ids = {}
    with session_scope() as session:
        for code, name in [
            ("TBL-OAK", "Oak table"),
            ("CHR-OAK", "Oak chair"),
            ("SHF-PIN", "Pine shelf"),
        ]:
            product = Product(code=code, name=name, created_by_id=actor_id)
            session.add(product)
            session.flush()
            product_ids[code] = product.id

    print("  [3/5] Creating orders...")
    order_specs = [
        ("PO-1001", [("TBL-OAK", 2), ("CHR-OAK", 8)]),
        ("PO-1002", [("CHR-OAK", 4)]),
        ("PO-1003", [("TBL-OAK", 1), ("SHF-PIN", 3)]),
        ("PO-1004", [("CHR-OAK", 6)]),
    ]
    orders = {}
    for order_number, lines in order_specs:
        with session_scope() as session:
            orders[order_number] = OrderService(session, clock).create_order(
                order_number,
                [OrderLineSpec(product_ids[code], qty) for code, qty in lines],
                actor_id,
            )
        clock.advance(60)

    print("  [4/5] Registering production batch B-0001...")
    result = runtime.intake.register_batch(
        "B-0001",
        "Morning shift",
        [
            BatchItemSpec(product_ids["TBL-OAK"], 3, container_code="C1"),
            BatchItemSpec(product_ids["CHR-OAK"], 15, container_code="C2"),
            BatchItemSpec(product_ids["SHF-PIN"], 5),
        ],
        actor_id,
    )

    print("  [5/5] Adding a note to PO-1002...")
    with session_scope() as session:
        NoteService(session, clock).create_note(
            "Customer will pick up at the dock",
            "ORDER_NOTE",
            actor_id,
            order_id=orders["PO-1002"].id,
        )

    print()
    print(json.dumps(result.as_dict(), indent=2))
    return 1 if result.has_errors else 0


if __name__ == "__main__":
    sys.exit(main())
