"""
AuditorService -- append-only, hash-chained activity log.

Responsibility:
    Appends one immutable AuditLogEntry for every state-changing step
    (allocation steps, order and batch intake, notes) and validates the hash
    chain for tamper detection.

Architecture position:
    Kernel > Services -- imperative shell, called by AllocationService,
    OrderService, BatchService and NoteService inside the transaction of the
    mutation being recorded.

Invariants enforced:
    - One entry per mutating step, never batched, never retried.  A failing
      append aborts the enclosing transaction.
    - seq comes from SequenceService (locked counter row).
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash),
      where payload_hash covers description, quantity, actor and references.

Failure modes:
    - AuditChainBrokenError: a recomputed hash does not match the stored one,
      or prev_hash does not match the predecessor's hash.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.exceptions import AuditChainBrokenError
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.audit_log import AuditAction, AuditLogEntry
from warehouse_kernel.services.sequence_service import SequenceService
from warehouse_kernel.utils.hashing import hash_audit_entry, hash_payload

logger = get_logger("services.auditor")

NOTE_PREVIEW_LENGTH = 50


def _entry_payload(entry: AuditLogEntry) -> dict[str, Any]:
    return {
        "description": entry.description,
        "quantity": entry.quantity,
        "actor_id": entry.actor_id,
        "order_id": entry.order_id,
        "product_id": entry.product_id,
        "batch_id": entry.batch_id,
        "batch_item_id": entry.batch_item_id,
        "note_id": entry.note_id,
    }


def _entry_hash(entry: AuditLogEntry, payload_hash: str) -> str:
    return hash_audit_entry(
        entity_type=entry.entity_type,
        entity_id=str(entry.entity_id),
        action=AuditAction(entry.action).value,
        payload_hash=payload_hash,
        prev_hash=entry.prev_hash,
    )


class AuditorService:
    """
    Service for appending and validating activity log entries.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT read the log for display; see AuditLogSelector.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        """Get the hash of the most recent entry."""
        return self._session.execute(
            select(AuditLogEntry.hash)
            .order_by(AuditLogEntry.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

    def _append(
        self,
        action: AuditAction,
        description: str,
        actor_id: UUID,
        *,
        quantity: int | None = None,
        order_id: UUID | None = None,
        product_id: UUID | None = None,
        batch_id: UUID | None = None,
        batch_item_id: UUID | None = None,
        note_id: UUID | None = None,
    ) -> AuditLogEntry:
        """
        Create a new entry with hash chain linkage.

        Postconditions:
            - The entry is flushed with a monotonically increasing seq.
            - entry.hash links to the previous entry's hash.
        """
        # The counter row lock serializes appenders, so the last hash read
        # after it is stable until commit.
        seq = self._sequence_service.next_value(SequenceService.AUDIT_LOG)
        prev_hash = self._get_last_hash()

        entry = AuditLogEntry(
            seq=seq,
            action=action,
            description=description,
            quantity=quantity,
            actor_id=actor_id,
            order_id=order_id,
            product_id=product_id,
            batch_id=batch_id,
            batch_item_id=batch_item_id,
            note_id=note_id,
            occurred_at=self._clock.now(),
            prev_hash=prev_hash,
        )
        entry.payload_hash = hash_payload(_entry_payload(entry))
        entry.hash = _entry_hash(entry, entry.payload_hash)

        self._session.add(entry)
        self._session.flush()

        logger.info(
            "audit_entry_created",
            extra={
                "action": action.value,
                "seq": seq,
                "entity_type": entry.entity_type,
                "entity_id": str(entry.entity_id),
                "quantity": quantity,
            },
        )

        return entry

    # Allocation

    def record_auto_assignment(
        self,
        *,
        batch_item_id: UUID,
        batch_id: UUID | None,
        product_id: UUID,
        order_id: UUID,
        order_number: str,
        quantity: int,
        actor_id: UUID,
    ) -> AuditLogEntry:
        return self._append(
            AuditAction.AUTO_ASSIGN_BATCH_TO_ORDER,
            (
                f"Automatic assignment: {quantity} units of batch item "
                f"{batch_item_id} to order {order_number}"
            ),
            actor_id,
            quantity=quantity,
            order_id=order_id,
            product_id=product_id,
            batch_id=batch_id,
            batch_item_id=batch_item_id,
        )

    def record_over_assignment(
        self,
        *,
        batch_item_id: UUID,
        batch_id: UUID | None,
        product_id: UUID,
        order_id: UUID,
        order_number: str,
        quantity: int,
        link_total: int,
        actor_id: UUID,
    ) -> AuditLogEntry:
        """Leftover forced onto the last touched order line."""
        return self._append(
            AuditAction.OVER_ASSIGN_BATCH_TO_ORDER,
            (
                f"Over-assignment: {quantity} surplus units of batch item "
                f"{batch_item_id} to order {order_number} "
                f"(assigned total now {link_total})"
            ),
            actor_id,
            quantity=quantity,
            order_id=order_id,
            product_id=product_id,
            batch_id=batch_id,
            batch_item_id=batch_item_id,
        )

    # Orders

    def record_order_created(
        self,
        *,
        order_id: UUID,
        order_number: str,
        item_count: int,
        total_quantity: int,
        actor_id: UUID,
    ) -> AuditLogEntry:
        return self._append(
            AuditAction.CREATE_ORDER,
            (
                f"Order {order_number} created with {item_count} items "
                f"({total_quantity} units)"
            ),
            actor_id,
            quantity=total_quantity,
            order_id=order_id,
        )

    def record_order_updated(
        self,
        *,
        order_id: UUID,
        order_number: str,
        changes: dict[str, tuple[Any, Any]],
        actor_id: UUID,
    ) -> AuditLogEntry:
        rendered = ", ".join(
            f"{name}: {old!s} -> {new!s}" for name, (old, new) in sorted(changes.items())
        )
        return self._append(
            AuditAction.UPDATE_ORDER,
            f"Order {order_number} updated ({rendered})",
            actor_id,
            order_id=order_id,
        )

    def record_order_deleted(
        self,
        *,
        order_id: UUID,
        order_number: str,
        actor_id: UUID,
    ) -> AuditLogEntry:
        return self._append(
            AuditAction.DELETE_ORDER,
            f"Order {order_number} deleted",
            actor_id,
            order_id=order_id,
        )

    # Batches

    def record_batch_created(
        self,
        *,
        batch_id: UUID,
        batch_number: str,
        item_count: int,
        total_quantity: int,
        actor_id: UUID,
    ) -> AuditLogEntry:
        return self._append(
            AuditAction.CREATE_BATCH,
            (
                f"Batch {batch_number} created with {item_count} items "
                f"({total_quantity} units)"
            ),
            actor_id,
            quantity=total_quantity,
            batch_id=batch_id,
        )

    # Notes

    def record_note_created(
        self,
        *,
        note_id: UUID,
        content: str,
        actor_id: UUID,
        order_id: UUID | None = None,
        batch_item_id: UUID | None = None,
    ) -> AuditLogEntry:
        """The description carries the first 50 characters of the note."""
        preview = content[:NOTE_PREVIEW_LENGTH]
        if len(content) > NOTE_PREVIEW_LENGTH:
            preview += "..."
        return self._append(
            AuditAction.CREATE_NOTE,
            f"Note created: {preview}",
            actor_id,
            order_id=order_id,
            batch_item_id=batch_item_id,
            note_id=note_id,
        )

    # Chain validation

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Returns True only if every entry's payload hash and hash match the
        recomputed values, every prev_hash matches its predecessor, and the
        newest seq equals the last value issued by the audit sequence.

        Raises:
            AuditChainBrokenError: If chain validation fails at any point.
        """
        entries = self._session.execute(
            select(AuditLogEntry).order_by(AuditLogEntry.seq)
        ).scalars().all()

        last_seq = entries[-1].seq if entries else 0
        issued = self._sequence_service.current_value(SequenceService.AUDIT_LOG) or 0
        if issued != last_seq:
            # Entries were removed from the tail (or the counter was rewound).
            logger.critical(
                "audit_chain_truncated",
                extra={"issued_seq": issued, "last_seq": last_seq},
            )
            raise AuditChainBrokenError(
                str(entries[-1].id) if entries else "None",
                f"seq {issued}",
                f"seq {last_seq}",
            )

        if not entries:
            return True

        if entries[0].prev_hash is not None:
            logger.critical("audit_chain_broken", extra={"seq": entries[0].seq})
            raise AuditChainBrokenError(
                str(entries[0].id),
                "None",
                entries[0].prev_hash,
            )

        for i, entry in enumerate(entries):
            payload_hash = hash_payload(_entry_payload(entry))
            if payload_hash != entry.payload_hash:
                logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                raise AuditChainBrokenError(
                    str(entry.id),
                    payload_hash,
                    entry.payload_hash,
                )

            expected_hash = _entry_hash(entry, payload_hash)
            if entry.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                raise AuditChainBrokenError(
                    str(entry.id),
                    expected_hash,
                    entry.hash,
                )

            if i > 0:
                expected_prev = entries[i - 1].hash
                if entry.prev_hash != expected_prev:
                    logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                    raise AuditChainBrokenError(
                        str(entry.id),
                        expected_prev,
                        entry.prev_hash or "None",
                    )

        logger.info(
            "audit_chain_valid",
            extra={"entry_count": len(entries)},
        )
        return True
