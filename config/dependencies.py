# config/dependencies.py

import hmac
import logging
from typing import Optional, Iterable, Callable

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from sqlalchemy import select

from config.db import get_db
from config.settings import ADMIN_KEY, COOKIE_NAME
from model.user import Users
from src.utils import decode_access_token

logger = logging.getLogger(__name__)


def _get_token(request: Request) -> str:
    """Bearer header first, then the httponly session cookie."""
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        token = auth.split(" ", 1)[1].strip()
        if token:
            return token
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing or invalid Authorization header",
    )


def _decode(token: str) -> dict:
    try:
        return decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def _load_user_from_claims(payload: dict, db: Session) -> Users:
    public_id: Optional[str] = payload.get("sub")
    uid = payload.get("uid")

    if uid is not None:
        user = db.get(Users, int(uid))
    elif public_id:
        user = db.scalar(select(Users).where(Users.public_id == public_id))
    else:
        user = None

    if not user or user.deleted_at is not None:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


def user_from_token(token: str, db: Session) -> Users:
    """Resolve a raw token (e.g. a WebSocket query param) to an active user."""
    return _load_user_from_claims(_decode(token), db)


def require_user(request: Request, db: Session = Depends(get_db)) -> Users:
    return user_from_token(_get_token(request), db)


def current_user_optional(request: Request, db: Session = Depends(get_db)) -> Optional[Users]:
    try:
        return require_user(request, db)
    except HTTPException:
        return None


def require_roles(roles: Iterable[str]) -> Callable:
    """Factory that returns a dependency enforcing one of the given roles."""
    role_set = set(roles)

    def _dep(user: Users = Depends(require_user)) -> Users:
        if user.role not in role_set:
            logger.warning("Role check failed for user %s (role=%s, need=%s)", user.id, user.role, sorted(role_set))
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return _dep


def require_admin(user: Users = Depends(require_user)) -> Users:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin required")
    return user


require_moderator = require_roles(("admin", "moderator"))


def require_admin_key(request: Request) -> None:
    """Operator secret; only the bootstrap and password-reset routes accept it."""
    supplied = request.headers.get("x-admin-key") or ""
    if not ADMIN_KEY or not hmac.compare_digest(supplied.encode(), ADMIN_KEY.encode()):
        raise HTTPException(status_code=403, detail="Invalid admin key")
