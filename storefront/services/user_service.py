from typing import Optional
import logging

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.user import User
from storefront.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


class UserService:
    """Buyer directory: match an existing buyer or register a new one."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_or_create(
        self,
        name: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        """
        Find a user by phone OR email, creating one on first purchase.

        Does not commit; the caller owns the transaction.
        """
        if not phone and not email:
            raise InvalidInputError("Buyer phone or email is required")

        conditions = []
        if phone:
            conditions.append(User.phone_number == phone)
        if email:
            conditions.append(User.email == email)

        result = await self.db.execute(
            select(User).where(or_(*conditions)).order_by(User.id).limit(1)
        )
        user = result.scalar_one_or_none()
        if user:
            return user

        user = User(name=name, phone_number=phone, email=email)
        self.db.add(user)
        await self.db.flush()
        logger.info(f"Created user {user.id} for buyer {email or phone}")
        return user
