from typing import Annotated
import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.database import get_db
from storefront.core.exceptions import StorefrontError, ErrorKind


logger = logging.getLogger(__name__)


# HTTP status per domain error kind
ERROR_STATUS_CODES = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INSUFFICIENT_STOCK: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_STATE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_TRANSITION: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def http_error(exc: StorefrontError) -> HTTPException:
    """Translate a domain error into an HTTPException carrying its kind and context."""
    status_code = ERROR_STATUS_CODES.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    if status_code == status.HTTP_404_NOT_FOUND:
        logger.debug(f"{exc.kind.value}: {exc.message}")
    else:
        logger.info(f"{exc.kind.value}: {exc.message}")
    return HTTPException(status_code=status_code, detail=exc.to_dict())


# Type alias for dependency injection
DB = Annotated[AsyncSession, Depends(get_db)]
