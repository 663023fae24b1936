"""
NoteService -- free-text notes on orders and batch items.

Responsibility:
    Validates and persists notes and appends one CREATE_NOTE audit entry per
    note in the same transaction.

Architecture position:
    Kernel > Services -- flush-only.  The caller owns the transaction.

Invariants enforced:
    - content is non-blank; note_type is a known NoteType.
    - A referenced order or batch item exists at creation time.
    - created_at comes from the injected Clock.

Failure modes:
    - MissingNoteContentError / InvalidNoteTypeError / InvalidIdentifierError
      before anything is written.
    - OrderNotFoundError / BatchItemNotFoundError for unknown references.
    - NoteNotFoundError from get_note.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.domain.dtos import NoteView
from warehouse_kernel.domain.values import coerce_identifier
from warehouse_kernel.exceptions import (
    BatchItemNotFoundError,
    InvalidNoteTypeError,
    MissingNoteContentError,
    NoteNotFoundError,
    OrderNotFoundError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.batch import BatchItem
from warehouse_kernel.models.note import Note, NoteType
from warehouse_kernel.models.order import Order
from warehouse_kernel.services.auditor_service import AuditorService
from warehouse_kernel.services.base import BaseService

logger = get_logger("services.note")


def parse_note_type(value: NoteType | str | None) -> NoteType:
    """
    Raises:
        InvalidNoteTypeError: value is not one of the NoteType names.
    """
    try:
        return NoteType(value)
    except ValueError as exc:
        raise InvalidNoteTypeError(value) from exc


class NoteService(BaseService[Note]):
    """Service for creating and reading notes."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auditor: AuditorService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._auditor = auditor or AuditorService(session, self._clock)

    def _to_dto(self, note: Note, order_number: str | None = None) -> NoteView:
        return NoteView(
            id=note.id,
            note_type=note.note_type.value,
            content=note.content,
            author_id=note.created_by_id,
            created_at=note.created_at,
            order_id=note.order_id,
            order_number=order_number,
            batch_item_id=note.batch_item_id,
        )

    def get_note(self, note_id: UUID | str) -> NoteView:
        """
        Raises:
            NoteNotFoundError: If the note doesn't exist.
        """
        note = self.session.get(Note, coerce_identifier(note_id, "note_id"))
        if note is None:
            raise NoteNotFoundError(str(note_id))
        order_number = None
        if note.order_id is not None:
            order = self.session.get(Order, note.order_id)
            order_number = order.order_number if order is not None else None
        return self._to_dto(note, order_number)

    def create_note(
        self,
        content: str | None,
        note_type: NoteType | str | None,
        actor_id: UUID,
        order_id: UUID | str | None = None,
        batch_item_id: UUID | str | None = None,
    ) -> NoteView:
        """
        Create a note and its CREATE_NOTE entry.

        Args:
            content: The note text; surrounding whitespace is kept.
            note_type: One of ORDER_NOTE, GENERAL_NOTE, SYSTEM_NOTE,
                BATCH_ITEM_NOTE.
            actor_id: The author.
            order_id: Optional order the note is about.
            batch_item_id: Optional batch item the note is about.

        Raises:
            MissingNoteContentError: content is None or blank.
            InvalidNoteTypeError: unknown note_type.
            InvalidIdentifierError: a reference is not a UUID.
            OrderNotFoundError: order_id references no order.
            BatchItemNotFoundError: batch_item_id references no batch item.
        """
        if content is None or not str(content).strip():
            raise MissingNoteContentError()
        content = str(content)
        kind = parse_note_type(note_type)

        order_number = None
        order_uuid = None
        if order_id is not None:
            order_uuid = coerce_identifier(order_id, "order_id")
            order = self.session.get(Order, order_uuid)
            if order is None:
                raise OrderNotFoundError(str(order_id))
            order_number = order.order_number

        batch_item_uuid = None
        if batch_item_id is not None:
            batch_item_uuid = coerce_identifier(batch_item_id, "batch_item_id")
            if self.session.get(BatchItem, batch_item_uuid) is None:
                raise BatchItemNotFoundError(str(batch_item_id))

        note = Note(
            content=content,
            note_type=kind,
            order_id=order_uuid,
            batch_item_id=batch_item_uuid,
            created_at=self._clock.now(),
            created_by_id=actor_id,
        )
        self.session.add(note)
        self.session.flush()

        self._auditor.record_note_created(
            note_id=note.id,
            content=content,
            actor_id=actor_id,
            order_id=order_uuid,
            batch_item_id=batch_item_uuid,
        )

        logger.info(
            "note_created",
            extra={
                "note_id": str(note.id),
                "note_type": kind.value,
                "order_id": str(order_uuid) if order_uuid else None,
            },
        )
        return self._to_dto(note, order_number)
