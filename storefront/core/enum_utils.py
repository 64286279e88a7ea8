"""
Enum Utilities for VARCHAR-based Status Fields

STORAGE STANDARD:
━━━━━━━━━━━━━━━━━
• Database: VARCHAR(50) - NOT PostgreSQL ENUM
• SQLAlchemy: String(50) with Mapped[str]
• Pydantic: Python Enum for API validation
• Case: All enum values stored in UPPERCASE

DATA FLOW:
━━━━━━━━━━
INPUT (API Request):
    Pydantic Enum → .value → String → Database
    Example: OrderStatus.PENDING → "PENDING" → VARCHAR

OUTPUT (API Response):
    Database → String → Return directly
"""

from enum import Enum
from typing import Any, Optional, TypeVar, Type, Set


T = TypeVar('T', bound=Enum)


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(OrderStatus.PENDING)
        'PENDING'
        >>> get_enum_value("PENDING")
        'PENDING'
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def to_enum(value: Any, enum_class: Type[T]) -> Optional[T]:
    """
    Convert a string value to an enum instance, or None if it is not a member.

    Examples:
        >>> to_enum("PENDING", OrderStatus)
        OrderStatus.PENDING
        >>> to_enum("INVALID", OrderStatus)
        None
    """
    if value is None:
        return None
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except (ValueError, KeyError):
        return None


def enum_values(enum_class: Type[Enum]) -> list:
    """Get all values from an enum class."""
    return [e.value for e in enum_class]


def enum_comment(enum_class: Type[Enum]) -> str:
    """
    Generate a comment string for VARCHAR column.

    Examples:
        >>> enum_comment(OrderStatus)
        'PENDING, PROCESSING, SHIPPED, DELIVERED, CANCELLED'
    """
    return ", ".join(enum_values(enum_class))


def status_in(db_value: str, *enum_members: Enum) -> bool:
    """
    Check if database value matches any of the given enums.

    Examples:
        >>> status_in(order.status, OrderStatus.PENDING, OrderStatus.PROCESSING)
        True
    """
    if db_value is None:
        return False
    return db_value in [e.value for e in enum_members]


def normalize_to_uppercase(value: Any, valid_values: Set[str]) -> Any:
    """
    Normalize a string value to UPPERCASE if it's a valid enum value.

    Invalid values are returned as-is so Pydantic raises the validation error.

    Examples:
        >>> normalize_to_uppercase('pending', {'PENDING', 'SHIPPED'})
        'PENDING'
        >>> normalize_to_uppercase('invalid', {'PENDING', 'SHIPPED'})
        'invalid'
    """
    if value is None:
        return value
    if isinstance(value, str):
        upper_v = value.upper()
        if upper_v in valid_values:
            return upper_v
    return value


# =============================================================================
# PRE-DEFINED VALID VALUE SETS
# =============================================================================

VALID_ORDER_STATUSES = {
    "PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"
}

VALID_PRICING_RULE_TYPES = {
    "STANDARD", "BULK", "VARIANT", "VIP", "WHOLESALE"
}
