"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
import structlog
from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hoppin.auth.jwt import verify_token
from hoppin.store.documents import is_valid_segment

_bearer = HTTPBearer()


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> str:
    """Extract and verify the bearer JWT, return the user id. Raises 401 on failure.

    The user id keys the user's documents, so it must be a single path
    segment.
    """
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user_id = str(payload["sub"])
    if not is_valid_segment(user_id):
        raise HTTPException(status_code=401, detail="Invalid token subject")

    structlog.contextvars.bind_contextvars(user_id=user_id)
    return user_id
