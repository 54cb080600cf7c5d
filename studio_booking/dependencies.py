"""
Request dependencies: who is booking.

Customers are identified by a signed session cookie whose subject is their
email address. Issuing the cookie (login) happens outside this service;
``create_jwt`` exists for tooling and tests.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated

import jwt
from fastapi import Cookie, Depends, HTTPException, status

from studio_booking.config import JWT_ALGORITHM, JWT_EXPIRY_DAYS, JWT_SECRET
from studio_booking.models import UserInfo

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def create_jwt(email: str) -> str:
    issued_at = datetime.now(UTC)
    claims = {
        "sub": email.strip().lower(),
        "iat": issued_at,
        "exp": issued_at + timedelta(days=JWT_EXPIRY_DAYS),
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_session(token: str) -> UserInfo:
    """Turn a session token into the booking customer, or raise 401."""
    try:
        claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Session expired. Please log in again.") from None
    except jwt.PyJWTError as exc:
        logger.debug("Rejected session token: %s", exc)
        raise _unauthorized("Invalid session. Please log in again.") from None

    email = (claims.get("sub") or "").strip().lower()
    if not email:
        raise _unauthorized("Invalid token payload.")

    return UserInfo(
        email=email,
        created_at=datetime.fromtimestamp(claims.get("iat", 0), tz=UTC),
    )


async def get_current_user(
    session: Annotated[str | None, Cookie(alias=SESSION_COOKIE)] = None,
) -> UserInfo:
    if not session:
        raise _unauthorized("Authentication required. Please log in.")
    return decode_session(session)


CurrentUser = Annotated[UserInfo, Depends(get_current_user)]
