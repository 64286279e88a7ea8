"""Human-readable order codes: ``ORD-<year>-<6 base36 chars>``.

Uniqueness is checked inside the caller's transaction; the unique index on
``orders.order_code`` catches races the check cannot see.
"""
from datetime import datetime, timezone
from typing import Optional
import logging
import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import settings
from storefront.models.order import Order
from storefront.core.exceptions import CodeGenerationExhaustedError

logger = logging.getLogger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_uppercase
SUFFIX_LENGTH = 6


class OrderCodeGenerator:
    """Generate collision-checked order codes."""

    def __init__(
        self,
        db: AsyncSession,
        prefix: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ):
        self.db = db
        self.prefix = prefix or settings.ORDER_CODE_PREFIX
        self.max_attempts = max_attempts or settings.ORDER_CODE_MAX_ATTEMPTS

    def candidate(self, year: Optional[int] = None) -> str:
        year = year or datetime.now(timezone.utc).year
        suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(SUFFIX_LENGTH))
        return f"{self.prefix}-{year}-{suffix}"

    async def exists(self, code: str) -> bool:
        result = await self.db.execute(select(Order.id).where(Order.order_code == code).limit(1))
        return result.scalar_one_or_none() is not None

    async def generate(self) -> str:
        """Return an unused order code or raise CodeGenerationExhaustedError."""
        for attempt in range(1, self.max_attempts + 1):
            code = self.candidate()
            if not await self.exists(code):
                return code
            logger.warning(f"Order code collision on {code} (attempt {attempt}/{self.max_attempts})")

        raise CodeGenerationExhaustedError(
            f"Could not generate a unique order code after {self.max_attempts} attempts",
            {"attempts": self.max_attempts},
        )
