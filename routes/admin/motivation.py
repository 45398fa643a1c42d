# routes/admin/motivation.py
"""
Motivation quote catalogue and delivery controls.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Body, status
from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session

from config import settings
from config.db import get_db
from config.dependencies import require_admin
from model.base import utcnow
from model.motivation import MotivationQuote, MotivationDelivery
from model.user import Users
from schema.admin import QuoteIn, QuoteUpdate, PreviewIn
from src import motivation
from src.route_helpers import clamp_paging, get_or_404, get_active_user_or_404, page_envelope

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/motivation/quotes")
def list_quotes(
    tone: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    lang: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    admin: Users = Depends(require_admin),
):
    page, limit, offset = clamp_paging(page, limit, maximum=100)
    query = db.query(MotivationQuote)
    if tone in ("inspiration", "humor"):
        query = query.filter(MotivationQuote.tone == tone)
    if lang:
        query = query.filter(MotivationQuote.lang == lang.strip().lower())
    if tag:
        # tags are stored as a JSON list of strings
        query = query.filter(cast(MotivationQuote.tags, String).like(f'%"{tag.strip().lower()}"%'))
    if q and q.strip():
        like = f"%{q.strip()}%"
        query = query.filter(or_(MotivationQuote.text.ilike(like), MotivationQuote.author.ilike(like)))

    total = query.count()
    rows = query.order_by(MotivationQuote.created_at.desc(), MotivationQuote.id.desc()).offset(offset).limit(limit).all()
    return page_envelope(page, limit, total, [motivation.serialize_quote(r) for r in rows])


@router.post("/motivation/quotes", status_code=status.HTTP_201_CREATED)
def create_quote(body: QuoteIn, db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
    now = utcnow()
    quote = MotivationQuote(
        text=body.text,
        author=body.author.strip(),
        tone=body.tone,
        tags=body.tags,
        lang=body.lang.strip().lower() or "en",
        active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(quote)
    db.commit()
    logger.info("Admin %s created quote %s", admin.id, quote.id)
    return motivation.serialize_quote(quote)


@router.put("/motivation/quotes/{quote_id}")
def update_quote(quote_id: int, body: QuoteUpdate, db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
    quote = get_or_404(db, MotivationQuote, quote_id, "Quote")
    data = body.model_dump(exclude_none=True)
    if "text" in data:
        text = data["text"].strip()
        if not text:
            raise HTTPException(status_code=400, detail="Quote text required")
        quote.text = text
    if "author" in data:
        quote.author = data["author"].strip()
    if "tone" in data:
        quote.tone = data["tone"]
    if "tags" in data:
        quote.tags = data["tags"]
    if "lang" in data:
        quote.lang = data["lang"].strip().lower() or "en"
    if "active" in data:
        quote.active = data["active"]
    quote.updated_at = utcnow()
    db.commit()
    return motivation.serialize_quote(quote)


@router.delete("/motivation/quotes/{quote_id}")
def delete_quote(quote_id: int, db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
    quote = get_or_404(db, MotivationQuote, quote_id, "Quote")
    db.delete(quote)
    db.commit()
    logger.info("Admin %s deleted quote %s", admin.id, quote_id)
    return {"ok": True}


@router.post("/motivation/quotes/preview")
def preview(body: PreviewIn, db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
    """Estimate how many opted-in users a tag set would reach."""
    out = motivation.preview_audience(db, body.tags or [])
    out["tone"] = body.tone
    return out


def _send_one(db: Session, user: Users) -> dict:
    quote = motivation.pick_quote_for_user(db, user)
    if quote is None:
        return {"ok": False, "message": "No matching quote"}
    motivation.deliver(db, user, quote)
    db.commit()
    return {"ok": True, "sent": 1, "quoteId": quote.id}


@router.post("/motivation/send-test")
def send_test(db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
    """Deliver a quote to the calling admin, ignoring their delivery hour."""
    return _send_one(db, admin)


@router.post("/motivation/run-once")
def run_once(
    user_id: Optional[int] = Body(None, embed=True, alias="userId"),
    db: Session = Depends(get_db),
    admin: Users = Depends(require_admin),
):
    """With `userId`, deliver to that user now; otherwise run a full delivery cycle for the current hour."""
    if user_id is not None:
        user = get_active_user_or_404(db, user_id)
        return _send_one(db, user)
    sent = motivation.run_cycle(db)
    return {"ok": True, "sent": sent}


@router.get("/motivation/health")
def motivation_health(db: Session = Depends(get_db), admin: Users = Depends(require_admin)):
    since = utcnow() - timedelta(days=7)
    return {
        "ok": True,
        "enabled": settings.MOTIVATION_ENABLED,
        "totalQuotes": db.query(func.count(MotivationQuote.id)).scalar() or 0,
        "activeQuotes": db.query(func.count(MotivationQuote.id)).filter(MotivationQuote.active.is_(True)).scalar() or 0,
        "deliveries7d": db.query(func.count(MotivationDelivery.id)).filter(MotivationDelivery.delivered_at >= since).scalar() or 0,
    }
