# routes/admin/users.py
"""
Account management for platform admins: search, disable/enable and anonymize.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_admin
from model.base import utcnow
from model.user import Users
from src.accounts import anonymize_user
from src.route_helpers import clamp_paging, get_user_or_404, page_envelope
from src.serializers import serialize_user, iso

logger = logging.getLogger(__name__)

router = APIRouter()


def _admin_user_out(u: Users) -> dict:
    out = serialize_user(u, private=True)
    out["disabled"] = u.deleted_at is not None
    out["deletedAt"] = iso(u.deleted_at)
    return out


@router.get(
    "/users",
    responses={
        200: {"description": "Paged user list"},
        403: {"description": "Forbidden - Admin access required"},
    },
)
def list_users(
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    admin: Users = Depends(require_admin),
):
    """
    Newest accounts first; `search` matches pseudonym or email.

    **Requires admin role**
    """
    page, limit, offset = clamp_paging(page, limit, maximum=100)
    query = db.query(Users)
    if search and search.strip():
        like = f"%{search.strip()}%"
        query = query.filter(or_(Users.pseudonym.ilike(like), Users.email.ilike(like)))
    total = query.count()
    rows = query.order_by(Users.created_at.desc(), Users.id.desc()).offset(offset).limit(limit).all()
    return page_envelope(page, limit, total, [_admin_user_out(u) for u in rows])


@router.post(
    "/users/{user_id}/toggle-disable",
    responses={
        200: {"description": "New disabled state"},
        400: {"description": "Bad Request - cannot disable yourself"},
        403: {"description": "Forbidden - Admin access required"},
        404: {"description": "User not found"},
    },
)
def toggle_disable(user_id: int, db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
    """
    Flip `deleted_at` between now and null. Disabled accounts cannot log in.

    **Requires admin role**
    """
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot disable your own account")
    user = get_user_or_404(db, user_id)
    user.deleted_at = None if user.deleted_at else utcnow()
    db.commit()
    logger.info("Admin %s set user %s disabled=%s", admin.id, user.id, user.deleted_at is not None)
    return {"ok": True, "disabled": user.deleted_at is not None, "deletedAt": iso(user.deleted_at)}


@router.delete("/users/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
    """
    Anonymize the account. Posts stay and render as "Deleted user".

    **Requires admin role**
    """
    user = get_user_or_404(db, user_id)
    if user.role == "admin":
        raise HTTPException(status_code=400, detail="Refusing to remove an admin user")
    anonymize_user(db, user)
    db.commit()
    logger.info("Admin %s anonymized user %s", admin.id, user.id)
    return {"ok": True, "mode": "anonymize", "pseudonym": user.pseudonym}
