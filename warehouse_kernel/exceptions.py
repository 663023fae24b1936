"""
Typed Exception Hierarchy for the Warehouse Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the kernel (the batch intake orchestrator, operator scripts, an
HTTP layer living elsewhere) must be able to tell a rejected request from a
missing record from a storage failure without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        order_service.create_order(...)
    except DuplicateOrderNumberError as e:
        api_response(code=e.code, order_number=e.order_number)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WarehouseKernelError (base)
    |
    +-- ValidationError
    |   +-- MissingProductReferenceError
    |   +-- InvalidIdentifierError
    |   +-- InvalidQuantityError
    |   +-- EmptyOrderError
    |   +-- EmptyBatchError
    |   +-- DuplicateOrderNumberError
    |   +-- DuplicateBatchNumberError
    |   +-- InvalidOrderStatusError
    |   +-- MissingNoteContentError
    |   +-- InvalidNoteTypeError
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- OrderNotFoundError
    |   +-- BatchItemNotFoundError
    |   +-- NoteNotFoundError
    |
    +-- AllocationError
    |   +-- AssignmentLinkMismatchError
    |
    +-- ConcurrencyError
    |   +-- ProductLockTimeoutError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | MISSING_PRODUCT_REFERENCE   | product id is None or blank
                | INVALID_IDENTIFIER          | id or number blank or malformed
                | INVALID_QUANTITY            | quantity is not a positive integer
                | EMPTY_ORDER                 | order created without lines
                | EMPTY_BATCH                 | batch created without items
                | DUPLICATE_ORDER_NUMBER      | order_number already used
                | DUPLICATE_BATCH_NUMBER      | batch_number already used
                | INVALID_ORDER_STATUS        | unknown status value
                | MISSING_NOTE_CONTENT        | note content is None or blank
                | INVALID_NOTE_TYPE           | unknown note type
----------------|-----------------------------|-----------------------------------------
Not found       | PRODUCT_NOT_FOUND           | product id doesn't exist
                | ORDER_NOT_FOUND             | order id doesn't exist
                | BATCH_ITEM_NOT_FOUND        | batch item id doesn't exist
                | NOTE_NOT_FOUND              | note id doesn't exist
----------------|-----------------------------|-----------------------------------------
Allocation      | ASSIGNMENT_LINK_MISMATCH    | link total differs from planned total
----------------|-----------------------------|-----------------------------------------
Concurrency     | PRODUCT_LOCK_TIMEOUT        | per-product allocation lock not acquired
----------------|-----------------------------|-----------------------------------------
Audit           | AUDIT_CHAIN_BROKEN          | hash chain validation failed
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | audit entry rewritten, quantity decreased

===============================================================================
"""


class WarehouseKernelError(Exception):
    """
    Base exception for all warehouse kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "WAREHOUSE_KERNEL_ERROR"


# Validation exceptions


class ValidationError(WarehouseKernelError):
    """Base exception for input rejected before any transaction begins."""

    code: str = "VALIDATION_ERROR"


class MissingProductReferenceError(ValidationError):
    """A product id was required but not supplied."""

    code: str = "MISSING_PRODUCT_REFERENCE"

    def __init__(self, context: str):
        self.context = context
        super().__init__(f"Product reference is required ({context})")


class InvalidIdentifierError(ValidationError):
    """An identifier is blank or could not be parsed as a UUID."""

    code: str = "INVALID_IDENTIFIER"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid identifier for {field}: {value!r}")


class InvalidQuantityError(ValidationError):
    """Quantity is not a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(
            f"Quantity for {field} must be a positive integer, got {value!r}"
        )


class EmptyOrderError(ValidationError):
    """Order submitted without any product lines."""

    code: str = "EMPTY_ORDER"

    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__(f"Order {order_number} has no items")


class EmptyBatchError(ValidationError):
    """Batch submitted without any items."""

    code: str = "EMPTY_BATCH"

    def __init__(self, batch_number: str):
        self.batch_number = batch_number
        super().__init__(f"Batch {batch_number} has no items")


class DuplicateOrderNumberError(ValidationError):
    """An order with this number already exists."""

    code: str = "DUPLICATE_ORDER_NUMBER"

    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__(f"Order number already exists: {order_number}")


class DuplicateBatchNumberError(ValidationError):
    """A batch with this number already exists."""

    code: str = "DUPLICATE_BATCH_NUMBER"

    def __init__(self, batch_number: str):
        self.batch_number = batch_number
        super().__init__(f"Batch number already exists: {batch_number}")


class InvalidOrderStatusError(ValidationError):
    """Status value is not one of the known order statuses."""

    code: str = "INVALID_ORDER_STATUS"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Unknown order status: {value!r}")


class MissingNoteContentError(ValidationError):
    """A note was submitted without any text."""

    code: str = "MISSING_NOTE_CONTENT"

    def __init__(self):
        super().__init__("Note content is required")


class InvalidNoteTypeError(ValidationError):
    """Note type is not one of the known note types."""

    code: str = "INVALID_NOTE_TYPE"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unknown note type: {value!r}")


# Not-found exceptions


class NotFoundError(WarehouseKernelError):
    """Base exception for references to records that do not exist."""

    code: str = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class OrderNotFoundError(NotFoundError):
    """Order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class BatchItemNotFoundError(NotFoundError):
    """Batch item with given ID was not found."""

    code: str = "BATCH_ITEM_NOT_FOUND"

    def __init__(self, batch_item_id: str):
        self.batch_item_id = batch_item_id
        super().__init__(f"Batch item not found: {batch_item_id}")


class NoteNotFoundError(NotFoundError):
    """Note with given ID was not found."""

    code: str = "NOTE_NOT_FOUND"

    def __init__(self, note_id: str):
        self.note_id = note_id
        super().__init__(f"Note not found: {note_id}")


# Allocation exceptions


class AllocationError(WarehouseKernelError):
    """Base exception for allocation bookkeeping errors."""

    code: str = "ALLOCATION_ERROR"


class AssignmentLinkMismatchError(AllocationError):
    """
    The persisted assignment link total differs from the planned total.

    Raised inside the step transaction, so the step is rolled back.
    """

    code: str = "ASSIGNMENT_LINK_MISMATCH"

    def __init__(
        self,
        batch_item_id: str,
        order_item_id: str,
        expected: int,
        actual: int,
    ):
        self.batch_item_id = batch_item_id
        self.order_item_id = order_item_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Assignment link {batch_item_id}->{order_item_id} holds {actual}, "
            f"expected {expected}"
        )


# Concurrency exceptions


class ConcurrencyError(WarehouseKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ProductLockTimeoutError(ConcurrencyError):
    """The per-product allocation lock could not be acquired in time."""

    code: str = "PRODUCT_LOCK_TIMEOUT"

    def __init__(self, product_id: str, timeout_seconds: float):
        self.product_id = product_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Allocation lock for product {product_id} not acquired "
            f"within {timeout_seconds}s"
        )


# Audit exceptions


class AuditError(WarehouseKernelError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, entry_id: str, expected_hash: str, actual_hash: str):
        self.entry_id = entry_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at entry {entry_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )


# Immutability exceptions


class ImmutabilityError(WarehouseKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Audit log entries are immutable from creation; fulfilled quantities and
    assignment link quantities may only grow.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
