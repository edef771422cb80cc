"""Bearer-token authentication.

Access tokens are HS256 JWTs carrying ``userId`` and ``companyId`` claims.
The user row is re-read on every request so deactivated accounts lose
access immediately.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt  # PyJWT
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings
from backend.database import get_db
from backend.errors import unauthorized
from backend.models import User

logger = logging.getLogger(__name__)

ACCESS_TOKEN_LIFETIME = timedelta(days=7)


def create_access_token(user_id: int, company_id: int, role: str = "applicator") -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "companyId": company_id,
        "role": role,
        "iat": now,
        "exp": now + ACCESS_TOKEN_LIFETIME,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency: the active user behind the bearer token."""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise unauthorized("No token provided")

    try:
        payload = decode_access_token(header[len("Bearer "):])
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected access token: {e}")
        raise unauthorized("Invalid or expired token")

    result = await db.execute(select(User).where(User.id == payload.get("userId")))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise unauthorized("User not found or inactive")
    return user
