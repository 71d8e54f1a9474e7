"""
FastAPI dependencies for authentication.

Every protected endpoint declares get_current_user as a parameter. FastAPI
resolves it before validating the request body, so an unauthenticated
request is rejected with 401 before anything else about it is examined.

    X-Secret-Key missing        -> 401 AUTHENTICATION_REQUIRED
    X-Secret-Key doesn't match  -> 401 AUTHENTICATION_FAILED

Authorization (does the caller own this account?) is not a dependency: it
depends on ids in the path or body and is checked by the account service.
"""

from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.database import get_db
from ledger_api.exceptions import AuthenticationFailedError, AuthenticationRequiredError
from ledger_api.models.user import User
from ledger_api.services import auth_service

# auto_error=False: a missing header is reported through our own error
# shape rather than FastAPI's default 403. Also drives Swagger's "Authorize".
secret_key_header = APIKeyHeader(name="X-Secret-Key", auto_error=False)


async def get_current_user(
    secret_key: str | None = Depends(secret_key_header),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the X-Secret-Key header to the authenticated User.

    Raises:
        AuthenticationRequiredError: If the header is missing or empty.
        AuthenticationFailedError: If no user holds this key.
    """
    if not secret_key:
        raise AuthenticationRequiredError()

    user = await auth_service.resolve(db, secret_key)
    if user is None:
        raise AuthenticationFailedError()

    return user
