"""
Values -- input coercion for identifiers and quantities.

Responsibility:
    Turns caller-supplied identifiers and quantities into the canonical types
    the kernel works with, rejecting malformed input before any transaction
    begins.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Failure modes:
    - MissingProductReferenceError when a product id is None or blank.
    - InvalidIdentifierError when an id is not a UUID.
    - InvalidQuantityError when a quantity is not a positive integer.
"""

from uuid import UUID

from warehouse_kernel.exceptions import (
    InvalidIdentifierError,
    InvalidQuantityError,
    MissingProductReferenceError,
)


def coerce_identifier(value: UUID | str, field: str) -> UUID:
    """Return ``value`` as a UUID, parsing strings."""
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        raise InvalidIdentifierError(field, repr(value))
    try:
        return UUID(value.strip())
    except ValueError as exc:
        raise InvalidIdentifierError(field, value) from exc


def require_product_id(value: UUID | str | None, context: str) -> UUID:
    """Product ids are mandatory wherever demand or output is matched."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingProductReferenceError(context)
    return coerce_identifier(value, "product_id")


def require_positive_quantity(value: object, field: str) -> int:
    """
    Quantities are whole units greater than zero.

    bool is rejected even though it subclasses int.
    """
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidQuantityError(field, value)
    return value
