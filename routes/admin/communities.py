# routes/admin/communities.py
"""
Moderation of groups and pages: list, disable/enable and soft-delete.

Both resources share the same lifecycle (`disabled` flag plus `deleted_at`),
so the handlers are registered once per model.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_admin
from model.base import utcnow
from model.community import Group, GroupMember, Page, PageFollower
from model.user import Users
from src.route_helpers import clamp_paging, get_or_404, page_envelope
from src.serializers import serialize_group, serialize_page

logger = logging.getLogger(__name__)

router = APIRouter()


def _group_out(db: Session, g: Group) -> dict:
    n = db.query(func.count(GroupMember.user_id)).filter(GroupMember.group_id == g.id).scalar() or 0
    return serialize_group(g, members_count=n)


def _page_out(db: Session, p: Page) -> dict:
    n = db.query(func.count(PageFollower.user_id)).filter(PageFollower.page_id == p.id).scalar() or 0
    return serialize_page(p, followers_count=n)


RESOURCES = {
    "groups": (Group, "Group", _group_out),
    "pages": (Page, "Page", _page_out),
}


def _register(kind: str) -> None:
    model, label, out = RESOURCES[kind]

    @router.get(f"/{kind}", name=f"admin_list_{kind}")
    def list_items(
        q: Optional[str] = Query(None),
        state: Optional[str] = Query(None),
        page: int = Query(1),
        limit: int = Query(20),
        db: Session = Depends(get_db),
        admin: Users = Depends(require_admin),
    ):
        """`state` is one of active, disabled or deleted; default lists everything."""
        page, limit, offset = clamp_paging(page, limit, maximum=100)
        query = db.query(model)
        if q and q.strip():
            query = query.filter(model.name.ilike(f"%{q.strip()}%"))
        if state == "active":
            query = query.filter(model.disabled.is_(False), model.deleted_at.is_(None))
        elif state == "disabled":
            query = query.filter(model.disabled.is_(True))
        elif state == "deleted":
            query = query.filter(model.deleted_at.isnot(None))
        total = query.count()
        rows = query.order_by(model.created_at.desc(), model.id.desc()).offset(offset).limit(limit).all()
        return page_envelope(page, limit, total, [out(db, r) for r in rows])

    @router.post(f"/{kind}/{{item_id}}/disable", name=f"admin_disable_{kind}")
    def disable(item_id: int, db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
        obj = get_or_404(db, model, item_id, label)
        obj.disabled = True
        db.commit()
        logger.info("Admin %s disabled %s %s", admin.id, label.lower(), obj.id)
        return {"ok": True, "disabled": True}

    @router.post(f"/{kind}/{{item_id}}/enable", name=f"admin_enable_{kind}")
    def enable(item_id: int, db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
        obj = get_or_404(db, model, item_id, label)
        obj.disabled = False
        db.commit()
        logger.info("Admin %s enabled %s %s", admin.id, label.lower(), obj.id)
        return {"ok": True, "disabled": False}

    @router.delete(f"/{kind}/{{item_id}}", name=f"admin_soft_delete_{kind}")
    def soft_delete(item_id: int, db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
        obj = get_or_404(db, model, item_id, label)
        if obj.deleted_at is None:
            obj.deleted_at = utcnow()
        obj.disabled = True
        db.commit()
        logger.info("Admin %s soft-deleted %s %s", admin.id, label.lower(), obj.id)
        return {"ok": True, "deletedAt": obj.deleted_at.isoformat() + "Z"}


for _kind in RESOURCES:
    _register(_kind)
