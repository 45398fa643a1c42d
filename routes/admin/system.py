# routes/admin/system.py
"""
Operator endpoints: health, admin bootstrap/rotation, password reset and
notification broadcast.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_admin, require_admin_key, require_moderator
from model.base import utcnow
from model.user import Users, UserCredential
from routes.auth import create_account
from schema.admin import BroadcastIn
from schema.auth import BootstrapIn, ResetPasswordIn
from src.notifications import broadcast
from src.serializers import serialize_user
from src.utils import hash_password

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def admin_health(staff: Users = Depends(require_moderator)):
    return {"ok": True, "role": staff.role}


@router.post(
    "/bootstrap",
    status_code=status.HTTP_201_CREATED,
    openapi_extra={"security": []},
    responses={
        201: {"description": "Admin created (and previous admin demoted when rotating)"},
        403: {"description": "Forbidden - an admin exists and the admin key is missing or wrong"},
        409: {"description": "Pseudonym or email already in use"},
    },
)
def bootstrap_admin(body: BootstrapIn, request: Request, db: Session = Depends(get_db)):
    """
    Create the first admin account. Once an admin exists, the call rotates the
    admin: it needs the `x-admin-key` header and demotes the current admin(s).
    """
    current = db.query(Users).filter(Users.role == "admin", Users.deleted_at.is_(None)).all()
    if current:
        require_admin_key(request)

    pseudonym = body.pseudonym.strip()
    email = str(body.email).strip().lower() if body.email else None
    clash = db.query(Users.id).filter(func.lower(Users.pseudonym) == pseudonym.lower())
    if email:
        clash = db.query(Users.id).filter(or_(func.lower(Users.pseudonym) == pseudonym.lower(), Users.email == email))
    if clash.first() is not None:
        raise HTTPException(status_code=409, detail="Pseudonym or email already in use")

    for old in current:
        old.role = "user"
    admin = create_account(db, pseudonym, body.password, email=email, role="admin", email_verified=bool(email))
    db.commit()
    db.refresh(admin)

    if current:
        logger.warning("Admin rotated: demoted %s, new admin %s", [u.id for u in current], admin.id)
    else:
        logger.info("Bootstrap created first admin %s", admin.id)
    out = {"created": True, "admin": serialize_user(admin, private=True)}
    if current:
        out["rotated"] = True
    return out


@router.post(
    "/reset-password",
    openapi_extra={"security": []},
    dependencies=[Depends(require_admin_key)],
)
def reset_password(body: ResetPasswordIn, db: Session = Depends(get_db)):
    """Set a new password for any account by pseudonym (case-insensitive) or email. Needs `x-admin-key`."""
    ident = body.identifier.strip()
    user = (
        db.query(Users)
        .filter(or_(func.lower(Users.pseudonym) == ident.lower(), Users.email == ident.lower()))
        .first()
    )
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    creds = db.get(UserCredential, user.id)
    if creds is None:
        creds = UserCredential(user_id=user.id, password_hash="")
        db.add(creds)
    creds.password_hash = hash_password(body.new_password)
    creds.last_password_change = utcnow()
    db.commit()
    logger.info("Password reset by operator for user %s", user.id)
    return {"ok": True, "user": serialize_user(user)}


@router.post("/notifications/broadcast")
def broadcast_notification(body: BroadcastIn, db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
    """
    Send an `admin` notification to the listed users, or to every active account when `userIds` is null.

    **Requires admin role**
    """
    query = db.query(Users.id).filter(Users.deleted_at.is_(None))
    if body.user_ids is not None:
        if not body.user_ids:
            return {"ok": True, "sent": 0}
        query = query.filter(Users.id.in_(body.user_ids))
    ids = [uid for (uid,) in query.all()]
    sent = broadcast(db, ids, "admin", body.message.strip(), meta={"from": admin.id})
    db.commit()
    return {"ok": True, "sent": sent}
