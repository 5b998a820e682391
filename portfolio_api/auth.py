"""Authentication helpers and FastAPI security dependencies.

Admins authenticate with a bearer JWT issued by `/api/auth/login`.
`require_admin` guards content edits and contact moderation;
`optional_admin` lets public endpoints recognise a privileged reader
(for example to list soft-deleted records) without demanding a token.
"""

from typing import Optional

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import models, repositories
from .database import get_session
from .errors import AuthenticationFailed

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str, settings) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises
    `AuthenticationFailed` (401) on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationFailed("token expired")
    except jwt.PyJWTError:
        raise AuthenticationFailed("invalid token")


def _admin_from_credentials(request: Request, credentials: HTTPAuthorizationCredentials, session: Session) -> models.AdminUser:
    payload = decode_token(credentials.credentials, request.app.state.settings)
    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationFailed("invalid token payload")
    user = repositories.AdminUserRepository(session).get(user_id)
    if not user:
        raise AuthenticationFailed("user not found")
    return user


def require_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> models.AdminUser:
    """FastAPI dependency that returns the authenticated admin or fails with 401."""
    if credentials is None:
        raise AuthenticationFailed()
    return _admin_from_credentials(request, credentials, session)


def optional_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[models.AdminUser]:
    """Like `require_admin` but anonymous callers get `None`.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return _admin_from_credentials(request, credentials, session)
