"""
Module: warehouse_kernel.models.product
Responsibility: ORM persistence for products -- the identity that orders and
    production batches refer to.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Product code is unique.
    - Products are referenced by id only; nothing in the kernel mutates a
      product once orders or batch items point at it.

Audit relevance:
    Audit log entries carry ``product_id`` so the activity log can be filtered
    per product.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from warehouse_kernel.db.base import TrackedBase


class Product(TrackedBase):
    """A manufactured product that can be ordered and produced."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    def __repr__(self) -> str:
        return f"<Product {self.code} {self.name!r}>"
