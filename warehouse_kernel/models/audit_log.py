"""
Module: warehouse_kernel.models.audit_log
Responsibility: ORM persistence for the append-only, hash-chained activity log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Entries are append-only; any UPDATE or DELETE through the ORM raises
      ImmutabilityViolationError (db/immutability.py).
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash),
      computed by AuditorService.
    - seq is unique and monotonically increasing, allocated by SequenceService.
    - order/product/batch/batch_item/note references are plain ids without
      foreign keys so an entry outlives the order it describes.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.
    - AuditChainBrokenError when chain validation detects a hash mismatch.

Audit relevance:
    AuditLogEntry IS the activity log.  Every assignment step, overflow step,
    order create/update/delete, batch creation and note creation appends
    exactly one entry in the same transaction as the mutation it describes.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, Index, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    """Kinds of auditable mutations.

    Contract: adding a member requires a matching ``record_*`` method on
    AuditorService.
    """

    # Allocation
    AUTO_ASSIGN_BATCH_TO_ORDER = "AUTO_ASSIGN_BATCH_TO_ORDER"
    OVER_ASSIGN_BATCH_TO_ORDER = "OVER_ASSIGN_BATCH_TO_ORDER"

    # Order lifecycle
    CREATE_ORDER = "CREATE_ORDER"
    UPDATE_ORDER = "UPDATE_ORDER"
    DELETE_ORDER = "DELETE_ORDER"

    # Batch lifecycle
    CREATE_BATCH = "CREATE_BATCH"

    # Notes
    CREATE_NOTE = "CREATE_NOTE"


class AuditLogEntry(Base):
    """
    One immutable record of one mutation.

    Guarantees:
        - seq is globally unique and monotonically increasing.
        - prev_hash is None only for the first entry.
        - description is human-readable and embeds the quantity and the
          identifiers involved.
    """

    __tablename__ = "audit_log_entries"

    __table_args__ = (
        Index("idx_audit_log_action", "action"),
        Index("idx_audit_log_occurred", "occurred_at"),
        Index("idx_audit_log_order", "order_id"),
        Index("idx_audit_log_product", "product_id"),
    )

    seq: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        unique=True,
    )

    action: Mapped[AuditAction] = mapped_column(
        SAEnum(AuditAction, native_enum=False, length=50),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(2000),
        nullable=False,
    )

    quantity: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )

    actor_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    order_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    product_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    batch_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    batch_item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    note_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    payload_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    # Hash of the previous entry (null for the first one)
    prev_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuditLogEntry #{self.seq} {self.action.value}>"

    @property
    def entity_type(self) -> str:
        """Kind of record the entry is primarily about."""
        if self.note_id is not None:
            return "Note"
        if self.batch_item_id is not None:
            return "BatchItem"
        if self.order_id is not None:
            return "Order"
        if self.batch_id is not None:
            return "Batch"
        return "Product"

    @property
    def entity_id(self) -> UUID | None:
        if self.note_id is not None:
            return self.note_id
        if self.batch_item_id is not None:
            return self.batch_item_id
        if self.order_id is not None:
            return self.order_id
        if self.batch_id is not None:
            return self.batch_id
        return self.product_id

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
