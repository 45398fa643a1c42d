# routes/admin/factchecks.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from config import settings
from config.db import get_db
from config.dependencies import require_admin
from model.enums import VERDICTS
from model.factcheck import FactCheckResult
from model.post import Post
from model.user import Users
from src.factcheck.worker import get_worker
from src.route_helpers import clamp_paging, get_post_or_404, page_envelope
from src.serializers import serialize_factcheck

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/factchecks")
@router.get("/fact-checks", include_in_schema=False)
def list_factchecks(
    verdict: str = Query(""),
    min_conf: Optional[float] = Query(None, alias="minConf", ge=0, le=1),
    max_conf: Optional[float] = Query(None, alias="maxConf", ge=0, le=1),
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    admin: Users = Depends(require_admin),
):
    """
    Newest results first. `verdict` takes a comma list; `minConf`/`maxConf` bound confidence.

    **Requires admin role**
    """
    page, limit, offset = clamp_paging(page, limit, maximum=100)
    query = db.query(FactCheckResult, Post).outerjoin(Post, Post.id == FactCheckResult.post_id)
    wanted = [v.strip() for v in verdict.split(",") if v.strip()]
    if wanted:
        unknown = [v for v in wanted if v not in VERDICTS]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown verdict: {unknown[0]}")
        query = query.filter(FactCheckResult.verdict.in_(wanted))
    if min_conf is not None:
        query = query.filter(FactCheckResult.confidence >= min_conf)
    if max_conf is not None:
        query = query.filter(FactCheckResult.confidence <= max_conf)

    total = query.count()
    rows = (
        query.order_by(FactCheckResult.created_at.desc(), FactCheckResult.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    items = []
    for result, post in rows:
        item = serialize_factcheck(result)
        item["postText"] = post.text if post is not None else None
        item["authorId"] = post.author_id if post is not None else None
        item["authorName"] = post.author.pseudonym if post is not None and post.author is not None else None
        items.append(item)
    return page_envelope(page, limit, total, items)


@router.post("/factchecks/run/{post_id}")
def run_factcheck(post_id: int, force: bool = Query(False), db: Session = Depends(get_db),
                  admin: Users = Depends(require_admin)):
    """Run the pipeline synchronously for one post and return the stored result."""
    if not settings.TRUST_ENABLED:
        raise HTTPException(status_code=409, detail="Fact-checking is disabled")
    post = get_post_or_404(db, post_id)
    row = get_worker().check_post(db, post, force_gemini=force)
    db.commit()
    logger.info("Admin %s ran fact-check on post %s", admin.id, post.id)
    return serialize_factcheck(row)
