"""
Tests for AllocationService.

Covers:
- The four reference scenarios (exact fill, spill, overflow, no demand)
- Oldest order first, cancelled/completed orders ignored
- Step-level failure: earlier steps committed, run stops, error reported
- Overflow disabled by configuration
- Lock timeout and link mismatch reported, never raised
- Legacy batch item pointer and audit trail
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from warehouse_config import get_active_config
from warehouse_kernel.db.engine import session_scope
from warehouse_kernel.db.locks import ProductLockRegistry
from warehouse_kernel.exceptions import BatchItemNotFoundError
from warehouse_kernel.models.assignment import BatchItemAssignment
from warehouse_kernel.models.audit_log import AuditAction, AuditLogEntry
from warehouse_kernel.models.batch import BatchItem
from warehouse_kernel.models.order import OrderStatus
from warehouse_kernel.services.auditor_service import AuditorService
from warehouse_kernel.services.order_service import OrderService
from warehouse_services.allocation_service import AllocationService


def load_order(order_id):
    with session_scope() as s:
        return OrderService(s).get_order(order_id)


def audit_actions():
    with session_scope() as s:
        return [
            e.action
            for e in s.execute(
                select(AuditLogEntry).order_by(AuditLogEntry.seq)
            ).scalars()
        ]


def links_for(batch_item_id):
    with session_scope() as s:
        rows = s.execute(
            select(BatchItemAssignment).where(
                BatchItemAssignment.batch_item_id == batch_item_id
            )
        ).scalars()
        return {row.order_item_id: row.quantity for row in rows}


@pytest.fixture
def allocator(store, deterministic_clock):
    return AllocationService(store, clock=deterministic_clock)


class TestReferenceScenarios:

    def test_exact_fill_completes_order(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        product_id = create_product()
        order = create_order([(product_id, 100)])
        item = create_batch([(product_id, 100)]).items[0]

        report = allocator.allocate_batch_item(item, test_actor_id)

        assert report.succeeded
        assert report.assigned_quantity == 100
        assert report.remaining_quantity == 0
        assert len(report.assignments) == 1
        assert report.assignments[0].assigned_quantity == 100
        assert report.assignments[0].pending_after == 0
        assert load_order(order.id).status == OrderStatus.COMPLETED

    def test_spill_over_two_orders_oldest_first(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        product_id = create_product()
        o1 = create_order([(product_id, 100)])
        o2 = create_order([(product_id, 80)])
        item = create_batch([(product_id, 150)]).items[0]

        report = allocator.allocate_batch_item(item, test_actor_id)

        assert [(a.order_number, a.assigned_quantity) for a in report.assignments] == [
            (o1.order_number, 100),
            (o2.order_number, 50),
        ]
        assert report.assignments[1].pending_after == 30
        assert report.assigned_quantity == 150
        assert report.remaining_quantity == 0

        first, second = load_order(o1.id), load_order(o2.id)
        assert first.status == OrderStatus.COMPLETED
        assert second.status == OrderStatus.IN_PROGRESS
        assert second.items[0].completed_quantity == 50

    def test_overflow_lands_on_last_touched_line(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        product_id = create_product()
        order = create_order([(product_id, 100)])
        item = create_batch([(product_id, 120)]).items[0]

        report = allocator.allocate_batch_item(item, test_actor_id)

        assert [(a.assigned_quantity, a.pending_before, a.pending_after) for a in report.assignments] == [
            (100, 100, 0),
            (20, 0, -20),
        ]
        assert report.overflowed
        assert report.remaining_quantity == 0

        stored = load_order(order.id)
        assert stored.items[0].completed_quantity == 120
        assert stored.status == OrderStatus.COMPLETED
        assert links_for(item.batch_item_id) == {stored.items[0].id: 120}
        assert audit_actions()[-2:] == [
            AuditAction.AUTO_ASSIGN_BATCH_TO_ORDER,
            AuditAction.OVER_ASSIGN_BATCH_TO_ORDER,
        ]

    def test_no_pending_orders_is_not_an_error(
        self, allocator, create_product, create_batch, test_actor_id
    ):
        product_id = create_product()
        item = create_batch([(product_id, 50)]).items[0]
        before = audit_actions()

        report = allocator.allocate_batch_item(item, test_actor_id)

        assert report.succeeded
        assert report.assigned_quantity == 0
        assert report.remaining_quantity == 50
        assert report.assignments == ()
        assert links_for(item.batch_item_id) == {}
        assert audit_actions() == before


class TestCandidateSelection:

    def test_other_products_are_untouched(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        chairs, tables = create_product("Chair"), create_product("Table")
        order = create_order([(tables, 4), (chairs, 6)])
        item = create_batch([(chairs, 6)]).items[0]

        allocator.allocate_batch_item(item, test_actor_id)

        stored = load_order(order.id)
        by_product = {i.product_id: i.completed_quantity for i in stored.items}
        assert by_product == {tables: 0, chairs: 6}
        assert stored.status == OrderStatus.IN_PROGRESS

    def test_cancelled_and_completed_orders_are_skipped(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        product_id = create_product()
        cancelled = create_order([(product_id, 10)])
        done = create_order([(product_id, 10)])
        waiting = create_order([(product_id, 10)])
        with session_scope() as s:
            OrderService(s).update_order(cancelled.id, test_actor_id, status="CANCELLED")
            OrderService(s).update_order(done.id, test_actor_id, status="COMPLETED")

        item = create_batch([(product_id, 4)]).items[0]
        report = allocator.allocate_batch_item(item, test_actor_id)

        assert [a.order_id for a in report.assignments] == [waiting.id]
        assert load_order(cancelled.id).items[0].completed_quantity == 0

    def test_fully_completed_line_in_open_order_is_skipped(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        product_id = create_product()
        older = create_order([(product_id, 5)])
        newer = create_order([(product_id, 5)])
        allocator.allocate_batch_item(create_batch([(product_id, 5)]).items[0], test_actor_id)

        report = allocator.allocate_batch_item(
            create_batch([(product_id, 3)]).items[0], test_actor_id
        )

        assert [a.order_id for a in report.assignments] == [newer.id]
        assert load_order(older.id).items[0].completed_quantity == 5

    def test_two_lines_of_one_order_in_line_order(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        product_id = create_product()
        order = create_order([(product_id, 2), (product_id, 3)])
        item = create_batch([(product_id, 4)]).items[0]

        report = allocator.allocate_batch_item(item, test_actor_id)

        line1, line2 = load_order(order.id).items
        assert [a.order_item_id for a in report.assignments] == [line1.id, line2.id]
        assert (line1.completed_quantity, line2.completed_quantity) == (2, 2)

    def test_legacy_pointer_tracks_last_touched_line(
        self, allocator, create_product, create_order, create_batch, test_actor_id, session
    ):
        product_id = create_product()
        create_order([(product_id, 1)])
        second = create_order([(product_id, 5)])
        item = create_batch([(product_id, 3)]).items[0]

        allocator.allocate_batch_item(item, test_actor_id)

        stored = session.get(BatchItem, item.batch_item_id)
        assert stored.order_item_id == second.items[0].id
        assert stored.assigned_quantity == 3


class TestOverflowDisabled:

    def test_leftover_stays_unassigned(
        self, store, deterministic_clock, create_product, create_order, create_batch,
        test_actor_id,
    ):
        config = get_active_config(environ={"WAREHOUSE_OVERFLOW_TO_LAST_TOUCHED": "false"})
        allocator = AllocationService.from_config(config, store, deterministic_clock)
        product_id = create_product()
        order = create_order([(product_id, 100)])
        item = create_batch([(product_id, 120)]).items[0]

        report = allocator.allocate_batch_item(item, test_actor_id)

        assert report.succeeded
        assert report.assigned_quantity == 100
        assert report.remaining_quantity == 20
        assert not report.overflowed
        assert load_order(order.id).items[0].completed_quantity == 100
        assert AuditAction.OVER_ASSIGN_BATCH_TO_ORDER not in audit_actions()


class TestFailures:

    def test_failing_step_keeps_earlier_steps(
        self, allocator, create_product, create_order, create_batch, test_actor_id,
        monkeypatch, captured_logs,
    ):
        product_id = create_product()
        o1 = create_order([(product_id, 5)])
        o2 = create_order([(product_id, 5)])
        item = create_batch([(product_id, 10)]).items[0]

        original = AuditorService.record_auto_assignment
        calls = {"n": 0}

        def flaky(self, **kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("storage unavailable")
            return original(self, **kwargs)

        monkeypatch.setattr(AuditorService, "record_auto_assignment", flaky)

        report = allocator.allocate_batch_item(item, test_actor_id)

        assert not report.succeeded
        assert "storage unavailable" in report.error
        assert report.error_code == "RuntimeError"
        assert report.assigned_quantity == 5
        assert report.remaining_quantity == 5
        assert [a.order_id for a in report.assignments] == [o1.id]

        assert load_order(o1.id).items[0].completed_quantity == 5
        second = load_order(o2.id)
        assert second.items[0].completed_quantity == 0
        assert second.status == OrderStatus.PENDING
        assert set(links_for(item.batch_item_id)) == {load_order(o1.id).items[0].id}

        failed = [r for r in captured_logs() if r["message"] == "allocation_failed"]
        assert len(failed) == 1
        assert failed[0]["error_code"] == "RuntimeError"
        assert failed[0]["batch_item_id"] == str(item.batch_item_id)

    def test_link_mismatch_rolls_back_the_step(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        product_id = create_product()
        order = create_order([(product_id, 10)])
        item = create_batch([(product_id, 4)]).items[0]
        with session_scope() as s:
            s.add(BatchItemAssignment(
                batch_item_id=item.batch_item_id,
                order_item_id=order.items[0].id,
                quantity=1,
            ))

        report = allocator.allocate_batch_item(item, test_actor_id)

        assert report.error_code == "ASSIGNMENT_LINK_MISMATCH"
        assert report.assigned_quantity == 0
        assert report.remaining_quantity == 4
        assert links_for(item.batch_item_id) == {order.items[0].id: 1}
        assert load_order(order.id).items[0].completed_quantity == 0

    def test_lock_timeout_is_reported(
        self, store, deterministic_clock, create_product, create_order, create_batch,
        test_actor_id,
    ):
        locks = ProductLockRegistry()
        allocator = AllocationService(
            store, clock=deterministic_clock, lock_timeout_seconds=0.05, locks=locks,
        )
        product_id = create_product()
        order = create_order([(product_id, 3)])
        item = create_batch([(product_id, 3)]).items[0]

        with locks.hold(product_id, timeout=1.0):
            report = allocator.allocate_batch_item(item, test_actor_id)

        assert report.error_code == "PRODUCT_LOCK_TIMEOUT"
        assert report.remaining_quantity == 3
        assert load_order(order.id).items[0].completed_quantity == 0


class TestEntryPoints:

    def test_allocate_by_id(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        product_id = create_product("Shelf")
        create_order([(product_id, 2)])
        item = create_batch([(product_id, 2)]).items[0]

        report = allocator.allocate_batch_item_by_id(str(item.batch_item_id), test_actor_id)

        assert report.product_name == "Shelf"
        assert report.assigned_quantity == 2

    def test_allocate_unknown_batch_item_raises(self, allocator, test_actor_id):
        with pytest.raises(BatchItemNotFoundError):
            allocator.allocate_batch_item_by_id(uuid4(), test_actor_id)

    def test_report_dict_uses_display_keys(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        product_id = create_product("Chair")
        order = create_order([(product_id, 3)])
        item = create_batch([(product_id, 2)]).items[0]

        data = allocator.allocate_batch_item(item, test_actor_id).as_dict()

        assert data == {
            "batchItemId": str(item.batch_item_id),
            "productName": "Chair",
            "totalQuantity": 2,
            "assignedQuantity": 2,
            "remainingQuantity": 0,
            "assignments": [
                {
                    "orderNumber": order.order_number,
                    "orderItemId": str(order.items[0].id),
                    "assignedQuantity": 2,
                    "pendingBefore": 3,
                    "pendingAfter": 1,
                }
            ],
        }


class TestAuditTrail:

    def test_chain_validates_after_allocation(
        self, allocator, create_product, create_order, create_batch, test_actor_id
    ):
        product_id = create_product()
        create_order([(product_id, 3)])
        create_order([(product_id, 3)])
        allocator.allocate_batch_item(create_batch([(product_id, 8)]).items[0], test_actor_id)

        with session_scope() as s:
            assert AuditorService(s).validate_chain()
            entries = s.execute(
                select(AuditLogEntry).order_by(AuditLogEntry.seq)
            ).scalars().all()

        assert [e.action for e in entries] == [
            AuditAction.CREATE_ORDER,
            AuditAction.CREATE_ORDER,
            AuditAction.CREATE_BATCH,
            AuditAction.AUTO_ASSIGN_BATCH_TO_ORDER,
            AuditAction.AUTO_ASSIGN_BATCH_TO_ORDER,
            AuditAction.OVER_ASSIGN_BATCH_TO_ORDER,
        ]
        assert [e.seq for e in entries] == list(range(1, 7))
        assert all(e.actor_id == test_actor_id for e in entries)
        assert "total now 5" in entries[-1].description

    def test_lifecycle_logs_carry_context(
        self, allocator, create_product, create_order, create_batch, test_actor_id,
        captured_logs,
    ):
        product_id = create_product()
        create_order([(product_id, 1)])
        item = create_batch([(product_id, 1)]).items[0]

        allocator.allocate_batch_item(item, test_actor_id)

        logs = {r["message"]: r for r in captured_logs()}
        assert logs["allocation_started"]["product_id"] == str(product_id)
        assert logs["allocation_step_applied"]["assigned_quantity"] == 1
        assert logs["allocation_completed"]["actor_id"] == str(test_actor_id)
