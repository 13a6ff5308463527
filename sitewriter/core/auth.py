"""
Session resolution for the API.

The identity provider issues a bearer credential carrying the user id and the
remote-host access token. When SESSION_SECRET is configured the credential is
an HS256 JWT with `sub` and `access_token` claims. Without it, development and
tests use X-User-Id / X-Access-Token headers, with GITHUB_TOKEN as the token
fallback.
"""
from dataclasses import dataclass
from typing import Optional
import logging

import jwt
from fastapi import Depends, Header, HTTPException, Request

from sitewriter.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    user_id: str
    access_token: Optional[str] = None


def issue_session_token(user_id: str, access_token: str, secret: Optional[str] = None) -> str:
    """Mint a session JWT. Used by tooling and tests; the real issuer is external."""
    key = secret or settings.SESSION_SECRET
    if not key:
        raise ValueError("SESSION_SECRET is not configured")
    return jwt.encode({"sub": user_id, "access_token": access_token}, key, algorithm="HS256")


def verify_session_jwt(token: str, secret: str) -> Session:
    """
    Verify a session JWT and extract the session.

    Raises:
        HTTPException 401: Invalid or expired token
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            options={"verify_signature": True, "verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return Session(user_id=user_id, access_token=payload.get("access_token") or settings.GITHUB_TOKEN)


async def get_session(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Development identity header"),
    x_access_token: Optional[str] = Header(None, description="Development remote-host token"),
) -> Session:
    """
    Resolve the current session.

    Priority:
    1. Bearer JWT (when SESSION_SECRET is set)
    2. X-User-Id header (development and tests)
    3. 401 Unauthorized
    """
    auth_header = request.headers.get("Authorization", "")
    if settings.SESSION_SECRET and auth_header.startswith("Bearer "):
        return verify_session_jwt(auth_header[7:], settings.SESSION_SECRET)

    if x_user_id:
        return Session(user_id=x_user_id, access_token=x_access_token or settings.GITHUB_TOKEN)

    raise HTTPException(
        status_code=401,
        detail="Missing Authorization (Bearer session) or X-User-Id header",
    )


async def get_current_user_id(session: Session = Depends(get_session)) -> str:
    return session.user_id
