"""
Module: warehouse_kernel.selectors.audit_log_selector
Responsibility: Paginated, filterable read access to the activity log.
Architecture position: Kernel > Selectors.

Filters:
    - start / end: inclusive bounds on occurred_at (each optional).
    - action: exact action kind.
    - search: case-insensitive literal substring (``%`` and ``_`` match
      themselves) over action, description, product name and code, order
      number and batch number.

Entries are returned newest first (seq descending).  Order, product and batch
references are plain ids, so the joins are outer joins: an entry whose order
was deleted still appears, just without an order number.
"""

from datetime import datetime

from sqlalchemy import String, cast, func, or_, select

from warehouse_kernel.domain.dtos import AuditLogEntryView, AuditLogPage
from warehouse_kernel.domain.values import require_positive_quantity
from warehouse_kernel.models.audit_log import AuditAction, AuditLogEntry
from warehouse_kernel.models.batch import Batch
from warehouse_kernel.models.order import Order
from warehouse_kernel.models.product import Product
from warehouse_kernel.selectors.base import MAX_PAGE_SIZE, BaseSelector

_LIKE_ESCAPE = "\\"


def _contains_pattern(text: str) -> str:
    """LIKE pattern matching ``text`` literally anywhere in a column."""
    escaped = (
        text.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


class AuditLogSelector(BaseSelector[AuditLogEntry]):
    """Selector for the activity log view."""

    def list_entries(
        self,
        page: int = 1,
        limit: int = 20,
        start: datetime | None = None,
        end: datetime | None = None,
        search: str | None = None,
        action: AuditAction | str | None = None,
    ) -> AuditLogPage:
        """
        One page of audit log entries, newest first.

        Raises:
            InvalidQuantityError: page or limit is not a positive integer.
            ValueError: unknown action.
        """
        page = require_positive_quantity(page, "page")
        limit = min(require_positive_quantity(limit, "limit"), MAX_PAGE_SIZE)

        conditions = []
        if start is not None:
            conditions.append(AuditLogEntry.occurred_at >= start)
        if end is not None:
            conditions.append(AuditLogEntry.occurred_at <= end)
        if action is not None:
            conditions.append(AuditLogEntry.action == AuditAction(action))
        if search:
            pattern = _contains_pattern(search.strip())
            conditions.append(
                or_(
                    cast(AuditLogEntry.action, String).ilike(pattern, escape=_LIKE_ESCAPE),
                    AuditLogEntry.description.ilike(pattern, escape=_LIKE_ESCAPE),
                    Product.name.ilike(pattern, escape=_LIKE_ESCAPE),
                    Product.code.ilike(pattern, escape=_LIKE_ESCAPE),
                    Order.order_number.ilike(pattern, escape=_LIKE_ESCAPE),
                    Batch.batch_number.ilike(pattern, escape=_LIKE_ESCAPE),
                )
            )

        base = (
            select(
                AuditLogEntry,
                Product.code.label("product_code"),
                Order.order_number.label("order_number"),
                Batch.batch_number.label("batch_number"),
            )
            .outerjoin(Product, Product.id == AuditLogEntry.product_id)
            .outerjoin(Order, Order.id == AuditLogEntry.order_id)
            .outerjoin(Batch, Batch.id == AuditLogEntry.batch_id)
            .where(*conditions)
        )

        total = self.session.execute(
            select(func.count()).select_from(base.subquery())
        ).scalar_one()

        rows = self.session.execute(
            base.order_by(AuditLogEntry.seq.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        entries = tuple(
            AuditLogEntryView(
                id=entry.id,
                seq=entry.seq,
                action=entry.action.value,
                description=entry.description,
                quantity=entry.quantity,
                actor_id=entry.actor_id,
                order_id=entry.order_id,
                product_id=entry.product_id,
                batch_id=entry.batch_id,
                batch_item_id=entry.batch_item_id,
                occurred_at=entry.occurred_at,
                product_code=product_code,
                order_number=order_number,
                batch_number=batch_number,
                note_id=entry.note_id,
            )
            for entry, product_code, order_number, batch_number in rows
        )

        return AuditLogPage(
            entries=entries,
            page=page,
            limit=limit,
            total=total,
            filters={
                "start": start,
                "end": end,
                "search": search,
                "action": AuditAction(action).value if action is not None else None,
            },
        )
