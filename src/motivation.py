# src/motivation.py
"""
Daily motivation quotes.

Users opt in through their motivation prefs (hour, tones, interest/goal
tags, role, language). Every tick the worker picks the best-matching quote
for each user within MOTIVATION_WINDOW_MINUTES of their local hour,
skipping anyone who reached MOTIVATION_MAX_PER_DAY today and any quote
they saw recently.
"""
import logging
import random
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List, Iterable, Set

from sqlalchemy.orm import Session

from config import settings
from model.base import utcnow
from model.motivation import MotivationQuote, MotivationDelivery
from model.user import Users, MotivationPrefs
from src.notifications import notify

logger = logging.getLogger(__name__)

INTEREST_TAGS = (
    "sports", "football", "reading", "writing", "coding", "startups", "photography",
    "travel", "mindfulness", "productivity", "study", "exams", "fitness", "music",
    "art", "volunteering", "leadership", "public-speaking", "entrepreneurship",
)
GOAL_TAGS = (
    "be-a-writer", "get-fit", "learn-to-code", "ace-exams", "grow-business",
    "be-more-confident", "improve-focus", "save-money", "learn-language",
)
ROLES = ("student", "engineer", "designer", "teacher", "freelancer", "entrepreneur", "athlete", "artist", "other")
MAX_TAGS = 25
UNIVERSAL_TAG = "universal"
CANDIDATE_CAP = 200


def norm_tags(value) -> List[str]:
    """Lowercased, trimmed, de-duplicated tags from a list or comma-separated string."""
    if not value:
        return []
    items = value if isinstance(value, (list, tuple, set)) else str(value).split(",")
    out: List[str] = []
    for t in items:
        t = str(t).strip().lower()
        if t and t not in out:
            out.append(t)
    return out


def _clamp_hour(value, default: int = 9) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return n if 0 <= n <= 23 else default


def get_or_create_prefs(db: Session, user: Users) -> MotivationPrefs:
    prefs = user.motivation_prefs
    if prefs is None:
        prefs = MotivationPrefs(
            user_id=user.id, enabled=False, hour_local=9, tone_inspiration=True, tone_humor=False,
            interests=[], goals=[], role="", language="",
        )
        db.add(prefs)
        user.motivation_prefs = prefs
    return prefs


def apply_prefs_update(prefs: MotivationPrefs, data: Dict[str, Any]) -> MotivationPrefs:
    """Merge a partial update, keeping only tags and roles from the curated lists."""
    if isinstance(data.get("enabled"), bool):
        prefs.enabled = data["enabled"]
    if data.get("hourLocal") is not None:
        prefs.hour_local = _clamp_hour(data["hourLocal"], prefs.hour_local if prefs.hour_local is not None else 9)
    tone = data.get("tone")
    if isinstance(tone, dict):
        if tone.get("inspiration") is not None:
            prefs.tone_inspiration = bool(tone["inspiration"])
        if tone.get("humor") is not None:
            prefs.tone_humor = bool(tone["humor"])
    if isinstance(data.get("interests"), list):
        prefs.interests = [t for t in norm_tags(data["interests"]) if t in INTEREST_TAGS][:MAX_TAGS]
    if isinstance(data.get("goals"), list):
        prefs.goals = [t for t in norm_tags(data["goals"]) if t in GOAL_TAGS][:MAX_TAGS]
    if isinstance(data.get("role"), str):
        prefs.role = data["role"] if data["role"] in ROLES else ""
    if isinstance(data.get("language"), str):
        prefs.language = data["language"].strip()[:10]
    prefs.updated_at = utcnow()
    return prefs


def serialize_prefs(prefs: Optional[MotivationPrefs]) -> Dict[str, Any]:
    if prefs is None:
        return {
            "enabled": False, "hourLocal": 9, "tone": {"inspiration": True, "humor": False},
            "interests": [], "goals": [], "role": "", "language": "", "updatedAt": None,
        }
    return {
        "enabled": bool(prefs.enabled),
        "hourLocal": prefs.hour_local if prefs.hour_local is not None else 9,
        "tone": {"inspiration": bool(prefs.tone_inspiration), "humor": bool(prefs.tone_humor)},
        "interests": list(prefs.interests or []),
        "goals": list(prefs.goals or []),
        "role": prefs.role or "",
        "language": prefs.language or "",
        "updatedAt": prefs.updated_at.isoformat() + "Z" if prefs.updated_at else None,
    }


def allowed_tones(prefs: Optional[MotivationPrefs]) -> List[str]:
    tones = []
    if prefs is None or prefs.tone_inspiration is not False:
        tones.append("inspiration")
    if prefs is not None and prefs.tone_humor:
        tones.append("humor")
    return tones or ["inspiration"]


def user_tag_union(prefs: Optional[MotivationPrefs]) -> Set[str]:
    if prefs is None:
        return set()
    tags = set(norm_tags(prefs.interests)) | set(norm_tags(prefs.goals))
    if prefs.role:
        tags.add(prefs.role.lower())
    return tags


def recent_quote_ids(db: Session, user_id: int, now: Optional[datetime] = None) -> Set[int]:
    now = now or utcnow()
    since = now - timedelta(days=settings.MOTIVATION_ROTATE_DAYS)
    rows = (
        db.query(MotivationDelivery.quote_id)
        .filter(MotivationDelivery.user_id == user_id, MotivationDelivery.delivered_at >= since)
        .order_by(MotivationDelivery.delivered_at.desc())
        .limit(settings.MOTIVATION_ROTATE_MAX)
        .all()
    )
    return {qid for (qid,) in rows}


def score_quote(quote: MotivationQuote, prefs: Optional[MotivationPrefs], rng=random) -> float:
    """+2 per goal hit, +1 per interest or role hit, +0.25 for inspiration, plus jitter."""
    goals = set(norm_tags(prefs.goals)) if prefs else set()
    interests = set(norm_tags(prefs.interests)) if prefs else set()
    role = {prefs.role.lower()} if prefs and prefs.role else set()
    score = 0.0
    for t in norm_tags(quote.tags):
        if t in goals:
            score += 2
        if t in interests:
            score += 1
        if t in role:
            score += 1
    if quote.tone == "inspiration":
        score += 0.25
    return score + rng.random() * 0.1


def pick_quote_for_user(db: Session, user: Users, rng=random, now: Optional[datetime] = None) -> Optional[MotivationQuote]:
    prefs = user.motivation_prefs
    tones = allowed_tones(prefs)
    lang = (prefs.language or "").strip().lower() if prefs else ""
    wanted = user_tag_union(prefs)
    excluded = recent_quote_ids(db, user.id, now)

    q = db.query(MotivationQuote).filter(MotivationQuote.active.is_(True), MotivationQuote.tone.in_(tones))
    if excluded:
        q = q.filter(~MotivationQuote.id.in_(excluded))
    if lang:
        q = q.filter(MotivationQuote.lang == lang)

    best, best_score = None, float("-inf")
    for quote in q.order_by(MotivationQuote.id.asc()).limit(CANDIDATE_CAP * 5):
        tags = set(norm_tags(quote.tags))
        if not (tags & wanted) and UNIVERSAL_TAG not in tags:
            continue
        s = score_quote(quote, prefs, rng)
        if s > best_score:
            best, best_score = quote, s
    return best


def deliver(db: Session, user: Users, quote: MotivationQuote, now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    notify(
        db, user.id, "motivation",
        message=quote.text,
        quote_id=quote.id,
        meta={"quoteId": quote.id, "author": quote.author or "", "tags": norm_tags(quote.tags), "tone": quote.tone},
    )
    db.add(MotivationDelivery(user_id=user.id, quote_id=quote.id, delivered_at=now))


def in_window(hour_local: int, local_now: datetime, minutes: int = 30) -> bool:
    """True when local_now is within `minutes` of hour_local:00, wrapping midnight."""
    diff = abs(local_now.hour * 60 + local_now.minute - int(hour_local) * 60)
    return min(diff, 1440 - diff) <= minutes


def sent_today(db: Session, user_id: int, now: datetime, local_now: datetime) -> int:
    day_start = now - (local_now - local_now.replace(hour=0, minute=0, second=0, microsecond=0))
    return (
        db.query(MotivationDelivery)
        .filter(MotivationDelivery.user_id == user_id, MotivationDelivery.delivered_at >= day_start)
        .count()
    )


def run_cycle(db: Session, now: Optional[datetime] = None, local_now: Optional[datetime] = None, rng=random) -> int:
    """Send one quote to every opted-in user inside their delivery window. Returns how many were sent."""
    now = now or utcnow()
    local_now = local_now or datetime.now()
    rows = (
        db.query(Users, MotivationPrefs)
        .join(MotivationPrefs, MotivationPrefs.user_id == Users.id)
        .filter(MotivationPrefs.enabled.is_(True), Users.deleted_at.is_(None))
        .order_by(Users.id.asc())
        .all()
    )
    sent = skipped = 0
    for user, prefs in rows:
        if not in_window(prefs.hour_local, local_now, settings.MOTIVATION_WINDOW_MINUTES):
            skipped += 1
            continue
        if sent_today(db, user.id, now, local_now) >= settings.MOTIVATION_MAX_PER_DAY:
            skipped += 1
            continue
        quote = pick_quote_for_user(db, user, rng, now)
        if quote is None:
            skipped += 1
            continue
        deliver(db, user, quote, now)
        sent += 1
    db.commit()
    logger.info("Motivation cycle processed=%d sent=%d skipped=%d", len(rows), sent, skipped)
    return sent


def preview_audience(db: Session, tags: Iterable[str], sample_size: int = 5) -> Dict[str, Any]:
    tags = set(norm_tags(list(tags)))
    matches = []
    rows = (
        db.query(Users, MotivationPrefs)
        .join(MotivationPrefs, MotivationPrefs.user_id == Users.id)
        .filter(MotivationPrefs.enabled.is_(True), Users.deleted_at.is_(None))
        .all()
    )
    for user, prefs in rows:
        if not tags or (user_tag_union(prefs) & tags):
            matches.append(user)
    return {
        "tags": sorted(tags),
        "estimatedUsers": len(matches),
        "sampleUsers": [{"id": u.id, "pseudonym": u.pseudonym} for u in matches[:sample_size]],
    }


def serialize_quote(q: MotivationQuote) -> Dict[str, Any]:
    return {
        "id": q.id,
        "text": q.text,
        "author": q.author or "",
        "tags": list(q.tags or []),
        "tone": q.tone,
        "lang": q.lang,
        "active": bool(q.active),
        "createdAt": q.created_at.isoformat() + "Z" if q.created_at else None,
    }
