"""
auth.py - Bearer token verification
Access tokens are issued by the hosted auth provider (Supabase Auth). This
service never signs in users; it only verifies the token signature and
audience and reads the user id from the `sub` claim.
"""

import logging

from fastapi import Request, HTTPException, status
from jose import jwt, JWTError

from config import SUPABASE_JWT_SECRET, JWT_ALGORITHM, JWT_AUDIENCE

logger = logging.getLogger(__name__)


def verify_token(token: str) -> dict | None:
    """Decode and verify a JWT token. Returns the payload or None on failure."""
    try:
        return jwt.decode(token, SUPABASE_JWT_SECRET, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE)
    except JWTError as e:
        logger.debug(f"Rejected token: {e}")
        return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(request: Request) -> str:
    """
    FastAPI dependency - extracts the Bearer token from the Authorization
    header, verifies it, and returns the user id.
    Raises HTTP 401 if the token is missing or invalid.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise _unauthorized("Missing or invalid Authorization header")

    payload = verify_token(auth_header.split(" ", 1)[1])
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Token payload missing required claims")
    return user_id
