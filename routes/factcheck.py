# routes/factcheck.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.db import get_db
from model.factcheck import FactCheckResult
from src.serializers import serialize_factcheck

router = APIRouter()


@router.get("/{post_id}")
def latest_factcheck(post_id: int, db: Session = Depends(get_db)):
    """Latest annotation for a post, or null when none exists yet."""
    row = (
        db.query(FactCheckResult)
        .filter(FactCheckResult.post_id == post_id)
        .order_by(FactCheckResult.created_at.desc(), FactCheckResult.id.desc())
        .first()
    )
    return serialize_factcheck(row)
