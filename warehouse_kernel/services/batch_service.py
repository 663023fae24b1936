"""
BatchService -- production batch intake.

Responsibility:
    Validates and persists a production batch with its items and containers
    and appends the CREATE_BATCH audit entry.  Allocation of the new items is
    NOT done here; BatchIntakeOrchestrator runs the allocator once per item
    after this service's transaction commits.

Architecture position:
    Kernel > Services -- flush-only.

Invariants enforced:
    - batch_number is unique and non-blank; a batch has at least one item.
    - Item quantities are positive integers; referenced products exist.
    - Every container code named by an item exists on the batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from warehouse_kernel.domain.clock import Clock, SystemClock
from warehouse_kernel.domain.dtos import BatchItemRef, BatchItemSpec
from warehouse_kernel.domain.values import (
    require_positive_quantity,
    require_product_id,
)
from warehouse_kernel.exceptions import (
    DuplicateBatchNumberError,
    EmptyBatchError,
    InvalidIdentifierError,
    ProductNotFoundError,
)
from warehouse_kernel.logging_config import get_logger
from warehouse_kernel.models.batch import Batch, BatchItem, BatchStatus, Container
from warehouse_kernel.models.product import Product
from warehouse_kernel.services.auditor_service import AuditorService
from warehouse_kernel.services.base import BaseService

logger = get_logger("services.batch")


@dataclass(frozen=True)
class BatchInfo:
    """Immutable DTO for a created batch."""

    id: UUID
    batch_number: str
    name: str
    description: str | None
    status: BatchStatus
    container_codes: tuple[str, ...]
    items: tuple[BatchItemRef, ...]

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


class BatchService(BaseService[Batch]):
    """Service for creating production batches."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auditor: AuditorService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._auditor = auditor or AuditorService(session, self._clock)

    def create_batch(
        self,
        batch_number: str,
        name: str,
        items: Sequence[BatchItemSpec],
        actor_id: UUID,
        description: str | None = None,
        containers: Sequence[str] = (),
    ) -> BatchInfo:
        """
        Create an ACTIVE batch, its items and containers.

        Containers are named ``Container <code>``.  A container code used by
        an item but missing from ``containers`` is created as well.

        Raises:
            InvalidIdentifierError: batch_number or name is blank.
            EmptyBatchError: no items.
            InvalidQuantityError: an item quantity is not a positive integer.
            DuplicateBatchNumberError: batch_number already exists.
            ProductNotFoundError: an item references an unknown product.
        """
        if batch_number is None or not str(batch_number).strip():
            raise InvalidIdentifierError("batch_number", batch_number)
        if name is None or not str(name).strip():
            raise InvalidIdentifierError("name", name)
        batch_number = str(batch_number).strip()

        if not items:
            raise EmptyBatchError(batch_number)

        prepared: list[tuple[UUID, int, str | None]] = []
        for index, spec in enumerate(items, start=1):
            product_id = require_product_id(spec.product_id, f"batch item {index}")
            quantity = require_positive_quantity(spec.quantity, f"batch item {index}")
            prepared.append((product_id, quantity, spec.container_code))

        existing = self.session.execute(
            select(Batch.id).where(Batch.batch_number == batch_number)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateBatchNumberError(batch_number)

        products: dict[UUID, Product] = {}
        for product_id, _, _ in prepared:
            if product_id not in products:
                product = self.session.get(Product, product_id)
                if product is None:
                    raise ProductNotFoundError(str(product_id))
                products[product_id] = product

        batch = Batch(
            batch_number=batch_number,
            name=str(name).strip(),
            description=description,
            status=BatchStatus.ACTIVE,
            created_at=self._clock.now(),
            created_by_id=actor_id,
        )

        container_codes = list(dict.fromkeys(
            [c for c in containers if c] + [c for _, _, c in prepared if c]
        ))
        by_code: dict[str, Container] = {}
        for code in container_codes:
            container = Container(container_code=code, name=f"Container {code}")
            batch.containers.append(container)
            by_code[code] = container

        created: list[BatchItem] = []
        for product_id, quantity, code in prepared:
            item = BatchItem(
                product_id=product_id,
                quantity=quantity,
                container=by_code.get(code) if code else None,
            )
            batch.items.append(item)
            created.append(item)

        self.session.add(batch)
        self.session.flush()

        total = sum(q for _, q, _ in prepared)
        self._auditor.record_batch_created(
            batch_id=batch.id,
            batch_number=batch_number,
            item_count=len(created),
            total_quantity=total,
            actor_id=actor_id,
        )

        logger.info(
            "batch_created",
            extra={
                "batch_id": str(batch.id),
                "batch_number": batch_number,
                "item_count": len(created),
                "total_quantity": total,
            },
        )

        return BatchInfo(
            id=batch.id,
            batch_number=batch_number,
            name=batch.name,
            description=description,
            status=batch.status,
            container_codes=tuple(container_codes),
            items=tuple(
                BatchItemRef(
                    batch_item_id=item.id,
                    batch_id=batch.id,
                    product_id=item.product_id,
                    product_name=products[item.product_id].name,
                    quantity=item.quantity,
                )
                for item in created
            ),
        )
