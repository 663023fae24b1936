"""
Module: warehouse_kernel.models.note
Responsibility: ORM persistence for free-text notes attached to orders, batch
    items, or to nothing in particular.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - content is non-blank (validated by NoteService).
    - note_type is one of NoteType.
    - order_id becomes NULL when the order is deleted; the note survives.

Audit relevance:
    Every note is created together with one CREATE_NOTE audit entry that
    carries the note's id and the first 50 characters of its content.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import TrackedBase, UUIDString


class NoteType(str, Enum):
    """What a note is about."""

    ORDER_NOTE = "ORDER_NOTE"
    GENERAL_NOTE = "GENERAL_NOTE"
    SYSTEM_NOTE = "SYSTEM_NOTE"
    BATCH_ITEM_NOTE = "BATCH_ITEM_NOTE"


class Note(TrackedBase):
    """
    A user-written note.

    created_by_id is the author; created_at comes from the service's Clock so
    notes list newest first deterministically.
    """

    __tablename__ = "notes"

    __table_args__ = (
        Index("idx_note_order", "order_id"),
        Index("idx_note_batch_item", "batch_item_id"),
        Index("idx_note_created", "created_at"),
    )

    content: Mapped[str] = mapped_column(
        String(2000),
        nullable=False,
    )

    note_type: Mapped[NoteType] = mapped_column(
        SAEnum(NoteType, native_enum=False, length=20),
        nullable=False,
    )

    order_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
    )

    batch_item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("batch_items.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Note {self.note_type.value} {self.content[:20]!r}>"
