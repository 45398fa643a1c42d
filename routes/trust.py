# routes/trust.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from config.db import get_db
from model.factcheck import TrustSnapshot
from src.trust import serialize_snapshot

router = APIRouter()

SUBJECT_TYPES = ("user", "page")


@router.get("/{subject_type}/{subject_id}")
def get_trust(subject_type: str, subject_id: int, db: Session = Depends(get_db)):
    if subject_type not in SUBJECT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid subject type")
    snap = (
        db.query(TrustSnapshot)
        .filter(TrustSnapshot.subject_type == subject_type, TrustSnapshot.subject_id == subject_id)
        .first()
    )
    return serialize_snapshot(snap)
