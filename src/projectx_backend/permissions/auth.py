"""
Bearer token authentication.

Access tokens are HS256 JWTs whose ``sub`` claim is the user's numeric ID.
The principal is always rebuilt from the ``user`` table so that renamed or
deleted users are picked up on the next request.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from projectx_backend.database import get_db
from projectx_backend.exceptions import TokenExpiredException, UnauthorizedException
from projectx_backend.model.auth import User
from projectx_backend.permissions.principal import Principal
from projectx_backend.settings import settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, username: str, role: str, expires_minutes: Optional[int] = None) -> str:
    """Issue a signed access token for a user."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(minutes=expires_minutes or settings.JWT_EXPIRATION_MINUTES)
    payload = {
        "sub": str(user_id),
        "username": username,
        "role": role,
        "iat": now,
        "exp": expires,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        TokenExpiredException: If the exp claim is in the past
        UnauthorizedException: If the token is malformed or the signature is wrong
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredException()
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected token: {e}")
        raise UnauthorizedException(detail="Invalid token")

    if not str(payload.get("sub", "")).isdigit():
        raise UnauthorizedException(detail="Invalid token subject")

    return payload


def principal_from_token(token: str, db: Session) -> Principal:
    """Resolve a token to the principal of an existing user."""
    payload = decode_token(token)
    user = db.query(User).filter(User.id == int(payload["sub"])).first()

    if user is None:
        raise UnauthorizedException(detail="User not found")

    return Principal(user_id=user.id, username=user.username, role=user.role)


def get_current_principal(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: Session = Depends(get_db),
) -> Principal:
    """FastAPI dependency returning the authenticated caller."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException(detail="Authorization header required")

    return principal_from_token(credentials.credentials, db)
