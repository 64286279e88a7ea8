"""Domain error taxonomy for the order, inventory and pricing services.

Every error carries an ``ErrorKind`` so callers branch on the kind rather
than on message text or database error codes, plus a ``context`` dict with
the offending ids and quantities.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Discriminator for domain errors."""
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_INPUT = "INVALID_INPUT"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    INVALID_STATE = "INVALID_STATE"
    INVALID_TRANSITION = "INVALID_TRANSITION"


class StorefrontError(Exception):
    """Base exception for domain errors."""
    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "kind": self.kind.value,
            "context": self.context,
        }


class NotFoundError(StorefrontError):
    """Referenced product, variant, order, shipping record or rule is absent."""
    kind = ErrorKind.NOT_FOUND


class ConflictError(StorefrontError):
    """Duplicate unique key."""
    kind = ErrorKind.CONFLICT


class CodeGenerationExhaustedError(ConflictError):
    """No unused order code was found within the attempt budget."""


class InvalidInputError(StorefrontError):
    """Malformed quantities, negative values, price mismatches."""
    kind = ErrorKind.INVALID_INPUT


class InsufficientStockError(StorefrontError):
    """Requested quantity exceeds available stock."""
    kind = ErrorKind.INSUFFICIENT_STOCK

    def __init__(
        self,
        product_id: int,
        requested: int,
        available: Optional[int],
        color_id: Optional[int] = None,
        size_id: Optional[int] = None,
    ):
        if available is None:
            message = f"Insufficient stock for product {product_id}: no inventory record for this variant"
        else:
            message = (
                f"Insufficient stock for product {product_id}. "
                f"Available: {available}, Requested: {requested}"
            )
        super().__init__(
            message,
            context={
                "product_id": product_id,
                "color_id": color_id,
                "size_id": size_id,
                "requested": requested,
                "available": available,
            },
        )


class InvalidStateError(StorefrontError):
    """Operation attempted while the order is in the wrong status."""
    kind = ErrorKind.INVALID_STATE


class InvalidTransitionError(InvalidStateError):
    """Status change not allowed by the order state machine."""
    kind = ErrorKind.INVALID_TRANSITION
