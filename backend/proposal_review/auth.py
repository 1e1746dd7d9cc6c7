"""Bearer-token caller identity.

Tokens are issued by the upstream identity provider and signed with HS256
via python-jose; this service only verifies them and turns the claims into
a :class:`CallerIdentity`.  No request can ever resolve to the trusted
internal caller.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from proposal_review.services.access_control import CallerIdentity

load_dotenv()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# JWT configuration
# ---------------------------------------------------------------------------
JWT_SECRET = os.getenv("JWT_SECRET", "proposal-review-dev-secret-change-in-production")
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_HOURS = 24

# ---------------------------------------------------------------------------
# HTTPBearer scheme
# ---------------------------------------------------------------------------
security = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: int,
    role: Optional[str] = None,
    name: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=JWT_EXPIRY_HOURS),
) -> str:
    """Create a signed JWT for *user_id*.  Used by tooling and tests."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "exp": now + expires_in,
        "iat": now,
    }
    if role is not None:
        payload["role"] = role
    if name is not None:
        payload["name"] = name
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_caller(token: str) -> CallerIdentity:
    """Verify *token* and build the caller from its claims.

    Raises:
        HTTPException: 401 when the token is invalid, expired or has no
            integer ``sub``.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise _unauthorized("Invalid or expired token") from exc

    try:
        user_id = int(payload.get("sub", ""))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token payload")

    return CallerIdentity(
        user_id=user_id,
        role=payload.get("role"),
        display_name=payload.get("name"),
    )


async def get_current_caller(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CallerIdentity:
    """FastAPI dependency: extract and validate the Bearer JWT."""
    token = credentials.credentials if credentials is not None else None
    if not token:
        raise _unauthorized("Not authenticated")

    caller = decode_caller(token)
    request.state.user_id = caller.user_id
    return caller
