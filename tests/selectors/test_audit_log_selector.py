"""
Tests for AuditLogSelector: the paginated, filterable activity log.
"""

from datetime import timedelta

import pytest

from warehouse_kernel.exceptions import InvalidQuantityError
from warehouse_kernel.selectors.audit_log_selector import MAX_PAGE_SIZE, AuditLogSelector
from warehouse_services.allocation_service import AllocationService


@pytest.fixture
def activity(store, deterministic_clock, create_product, create_order, create_batch, test_actor_id):
    """Two orders, one batch and its allocation: six entries in total."""
    product_id = create_product("Walnut desk", code="DSK-WAL")
    create_order([(product_id, 2)], order_number="PO-A")
    create_order([(product_id, 2)], order_number="PO-B")
    start = deterministic_clock.now()
    item = create_batch([(product_id, 5)], batch_number="B-77").items[0]
    AllocationService(store, clock=deterministic_clock).allocate_batch_item(item, test_actor_id)
    return {"product_id": product_id, "batch_started": start}


class TestListEntries:

    def test_newest_first_with_totals(self, activity, session):
        page = AuditLogSelector(session).list_entries(page=1, limit=4)

        assert page.total == 6
        assert page.total_pages == 2
        assert [e.seq for e in page.entries] == [6, 5, 4, 3]
        assert page.entries[0].action == "OVER_ASSIGN_BATCH_TO_ORDER"

    def test_second_page(self, activity, session):
        page = AuditLogSelector(session).list_entries(page=2, limit=4)

        assert [e.seq for e in page.entries] == [2, 1]

    def test_page_past_the_end_is_empty(self, activity, session):
        page = AuditLogSelector(session).list_entries(page=9, limit=4)

        assert page.entries == ()
        assert page.total == 6

    def test_action_filter(self, activity, session):
        page = AuditLogSelector(session).list_entries(action="CREATE_ORDER")

        assert [e.order_number for e in page.entries] == ["PO-B", "PO-A"]
        assert page.filters["action"] == "CREATE_ORDER"

    def test_unknown_action(self, activity, session):
        with pytest.raises(ValueError):
            AuditLogSelector(session).list_entries(action="LAUNCH_ROCKET")

    @pytest.mark.parametrize("term", ["walnut", "DSK-wal", "b-77", "po-a", "over_assign"])
    def test_search_is_case_insensitive_across_columns(self, activity, session, term):
        page = AuditLogSelector(session).list_entries(search=term)

        assert page.total >= 1

    def test_search_without_match(self, activity, session):
        assert AuditLogSelector(session).list_entries(search="zzz-none").total == 0

    @pytest.mark.parametrize("term", ["%", "PO_A", "B_77"])
    def test_search_wildcards_are_literal(self, activity, session, term):
        assert AuditLogSelector(session).list_entries(search=term).total == 0

    def test_search_matches_literal_percent(self, activity, session, create_order):
        create_order([(activity["product_id"], 1)], order_number="RUSH_10%")

        page = AuditLogSelector(session).list_entries(search="h_10%")

        assert [e.order_number for e in page.entries] == ["RUSH_10%"]

    def test_date_range(self, activity, session):
        start = activity["batch_started"]

        after = AuditLogSelector(session).list_entries(start=start)
        before = AuditLogSelector(session).list_entries(end=start - timedelta(seconds=1))

        assert after.total == 4
        assert before.total == 2

    def test_joined_display_fields(self, activity, session):
        page = AuditLogSelector(session).list_entries(action="AUTO_ASSIGN_BATCH_TO_ORDER")

        entry = page.entries[-1]
        assert entry.product_code == "DSK-WAL"
        assert entry.order_number == "PO-A"
        assert entry.batch_number == "B-77"
        assert len(entry.folio) == 8

    def test_limit_is_capped(self, activity, session):
        page = AuditLogSelector(session).list_entries(limit=MAX_PAGE_SIZE + 50)

        assert page.limit == MAX_PAGE_SIZE

    @pytest.mark.parametrize("page_no, limit", [(0, 10), (1, 0), (-1, 5)])
    def test_invalid_paging(self, tables, session, page_no, limit):
        with pytest.raises(InvalidQuantityError):
            AuditLogSelector(session).list_entries(page=page_no, limit=limit)
