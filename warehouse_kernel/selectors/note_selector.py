"""
Module: warehouse_kernel.selectors.note_selector
Responsibility: Paginated read access to notes, newest first.
Architecture position: Kernel > Selectors.

Filters are optional and combine with AND: order, batch item and note type.
"""

from uuid import UUID

from sqlalchemy import func, select

from warehouse_kernel.domain.dtos import NotePage, NoteView
from warehouse_kernel.domain.values import coerce_identifier, require_positive_quantity
from warehouse_kernel.exceptions import InvalidNoteTypeError
from warehouse_kernel.models.note import Note, NoteType
from warehouse_kernel.models.order import Order
from warehouse_kernel.selectors.base import MAX_PAGE_SIZE, BaseSelector


class NoteSelector(BaseSelector[Note]):
    """Selector for the notes panel of an order or batch item."""

    def list_notes(
        self,
        order_id: UUID | str | None = None,
        batch_item_id: UUID | str | None = None,
        note_type: NoteType | str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> NotePage:
        """
        One page of notes, newest first.

        Raises:
            InvalidQuantityError: page or limit is not a positive integer.
            InvalidIdentifierError: order_id or batch_item_id is not a UUID.
            InvalidNoteTypeError: unknown note_type.
        """
        page = require_positive_quantity(page, "page")
        limit = min(require_positive_quantity(limit, "limit"), MAX_PAGE_SIZE)

        conditions = []
        if order_id is not None:
            conditions.append(Note.order_id == coerce_identifier(order_id, "order_id"))
        if batch_item_id is not None:
            conditions.append(
                Note.batch_item_id == coerce_identifier(batch_item_id, "batch_item_id")
            )
        if note_type is not None:
            try:
                conditions.append(Note.note_type == NoteType(note_type))
            except ValueError as exc:
                raise InvalidNoteTypeError(note_type) from exc

        total = self.session.execute(
            select(func.count()).select_from(Note).where(*conditions)
        ).scalar_one()

        rows = self.session.execute(
            select(Note, Order.order_number)
            .outerjoin(Order, Order.id == Note.order_id)
            .where(*conditions)
            .order_by(Note.created_at.desc(), Note.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        return NotePage(
            notes=tuple(
                NoteView(
                    id=note.id,
                    note_type=note.note_type.value,
                    content=note.content,
                    author_id=note.created_by_id,
                    created_at=note.created_at,
                    order_id=note.order_id,
                    order_number=order_number,
                    batch_item_id=note.batch_item_id,
                )
                for note, order_number in rows
            ),
            page=page,
            limit=limit,
            total=total,
        )
