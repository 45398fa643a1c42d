# src/trust.py
"""
Trust scores for authors and pages, derived from their fact-check history.

Each subject gets a Beta(alpha + good, beta + bad) posterior where "good" is
a `true` verdict and "bad" is `false` or `misleading`. The score is the
posterior mean; the badge stays `provisional` until enough checks exist.
"""
import logging
import math
from typing import Dict, Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from model.factcheck import FactCheckResult, TrustSnapshot
from model.post import Post

logger = logging.getLogger(__name__)

GOOD_VERDICTS = ("true",)
BAD_VERDICTS = ("false", "misleading")
Z95 = 1.96


def _pct(x: float) -> int:
    """0..1 -> whole percent, halves rounded up."""
    return int(math.floor(x * 100 + 0.5))


def compute_score(good: int, bad: int, checks: Optional[int] = None,
                  alpha: Optional[float] = None, beta: Optional[float] = None,
                  maturity: Optional[int] = None) -> Dict[str, Any]:
    alpha = settings.TRUST_PRIOR_ALPHA if alpha is None else alpha
    beta = settings.TRUST_PRIOR_BETA if beta is None else beta
    maturity = settings.TRUST_MATURITY_MIN if maturity is None else maturity
    checks = good + bad if checks is None else checks

    a = alpha + good
    b = beta + bad
    n = a + b
    mean = a / n
    var = (a * b) / (n * n * (n + 1))
    half = Z95 * math.sqrt(var)
    low = max(0.0, mean - half)
    high = min(1.0, mean + half)

    if checks < maturity:
        tier = "provisional"
    elif mean >= 0.70:
        tier = "high"
    elif mean < 0.40:
        tier = "low"
    else:
        tier = "normal"

    return {
        "checks": int(checks),
        "good": int(good),
        "bad": int(bad),
        "score": _pct(mean),
        "conf_low": _pct(low),
        "conf_high": _pct(high),
        "tier": tier,
    }


def _latest_verdicts(db: Session, post_filter) -> Dict[int, str]:
    """Latest verdict per post among posts matching `post_filter`."""
    latest = (
        db.query(FactCheckResult.post_id, func.max(FactCheckResult.id).label("max_id"))
        .join(Post, Post.id == FactCheckResult.post_id)
        .filter(post_filter)
        .group_by(FactCheckResult.post_id)
        .subquery()
    )
    rows = (
        db.query(FactCheckResult.post_id, FactCheckResult.verdict)
        .join(latest, FactCheckResult.id == latest.c.max_id)
        .all()
    )
    return {pid: verdict for pid, verdict in rows}


def recompute(db: Session, subject_type: str, subject_id: int) -> TrustSnapshot:
    if subject_type == "user":
        post_filter = Post.author_id == subject_id
    elif subject_type == "page":
        post_filter = Post.page_id == subject_id
    else:
        raise ValueError(f"unsupported trust subject: {subject_type}")

    verdicts = _latest_verdicts(db, post_filter)
    good = sum(1 for v in verdicts.values() if v in GOOD_VERDICTS)
    bad = sum(1 for v in verdicts.values() if v in BAD_VERDICTS)
    result = compute_score(good, bad)

    snap = (
        db.query(TrustSnapshot)
        .filter(TrustSnapshot.subject_type == subject_type, TrustSnapshot.subject_id == subject_id)
        .first()
    )
    if snap is None:
        snap = TrustSnapshot(subject_type=subject_type, subject_id=subject_id)
        db.add(snap)
    for key, value in result.items():
        setattr(snap, key, value)
    db.flush()
    logger.info("Trust %s:%s -> %s (%s, %d checks)", subject_type, subject_id, snap.score, snap.tier, snap.checks)
    return snap


def recompute_for_post(db: Session, post: Post) -> None:
    recompute(db, "user", post.author_id)
    if post.page_id:
        recompute(db, "page", post.page_id)


def serialize_snapshot(snap: Optional[TrustSnapshot]) -> Optional[Dict[str, Any]]:
    if snap is None:
        return None
    return {
        "subjectType": snap.subject_type,
        "subjectId": snap.subject_id,
        "checks": snap.checks,
        "good": snap.good,
        "bad": snap.bad,
        "score": snap.score,
        "confLow": snap.conf_low,
        "confHigh": snap.conf_high,
        "tier": snap.tier,
        "updatedAt": snap.updated_at.isoformat() + "Z" if snap.updated_at else None,
    }
