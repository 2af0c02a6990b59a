"""Domain errors raised by the store services.

Every error is final for the operation that raised it: services never
retry, they abort and let the caller (a view, a command, a test) report
the failure. Each subclass keeps its context as attributes so callers can
render precise messages.
"""


class StoreError(Exception):
    """Base class for all business-rule failures."""

    code = "store_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EntityNotFound(StoreError):
    code = "not_found"

    def __init__(self, entity: str, lookup):
        super().__init__(f"{entity} not found with criteria: {lookup}")
        self.entity = entity
        self.lookup = lookup


class InvalidCartState(StoreError):
    code = "invalid_cart_state"

    def __init__(self, cart_id, current: str, required: str, operation: str):
        super().__init__(
            f"Cannot perform '{operation}' on cart {cart_id}. Current state: {current}, required state: {required}"
        )
        self.cart_id = cart_id
        self.current = current
        self.required = required
        self.operation = operation


class InsufficientStock(StoreError):
    code = "insufficient_stock"

    def __init__(self, product_id, requested: int, available: int, sku: str = ""):
        label = sku or product_id
        super().__init__(
            f"Insufficient stock for product {label} (ID: {product_id}). Requested: {requested}, Available: {available}"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.sku = sku


class ValidationFailure(StoreError):
    code = "validation_failed"

    def __init__(self, field: str, value, message: str):
        super().__init__(f"Validation failed for field '{field}' with value '{value}': {message}")
        self.field = field
        self.value = value
        self.reason = message


class CartMergeConflict(StoreError):
    code = "merge_conflict"

    def __init__(self, guest_cart_id, user_cart_id, message: str):
        super().__init__(
            f"Cart merge failed between guest cart {guest_cart_id} and user cart {user_cart_id}: {message}"
        )
        self.guest_cart_id = guest_cart_id
        self.user_cart_id = user_cart_id


class DuplicateEntity(StoreError):
    code = "duplicate"

    def __init__(self, entity: str, field: str, value):
        super().__init__(f"{entity} already exists with {field}: {value}")
        self.entity = entity
        self.field = field
        self.value = value
