# src/factcheck/worker.py
"""
In-process fact-check queue.

Jobs are post ids pushed onto a `queue.Queue` and drained by one daemon
thread that opens its own session per job. Each job runs the pipeline
rules -> Gemini -> heuristics, stores a FactCheckResult and refreshes the
author's (and page's) trust snapshot.
"""
import logging
import queue
import re
import threading
import time
from datetime import timedelta
from typing import Optional, Callable, Dict, Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from model.base import utcnow
from model.factcheck import FactCheckResult
from model.post import Post, PostReaction
from src import trust
from src.factcheck.gemini import factcheck_with_gemini
from src.factcheck.rules import FactRules, get_rules

logger = logging.getLogger(__name__)

RECHECK_BATCH = 20
_TRAILING_EXCLAIM = re.compile(r"[!?]$")


def heuristic_verdict(text: str) -> Dict[str, Any]:
    """Fallback when no rule or provider answered."""
    text = (text or "").strip()
    if len(text) > 20 and not _TRAILING_EXCLAIM.search(text):
        return {"verdict": "unverified", "confidence": 0.6, "claim": text[:200]}
    return {"verdict": "opinion", "confidence": 0.4, "claim": ""}


class FactCheckWorker:
    def __init__(self, session_factory: Optional[Callable[[], Session]] = None,
                 provider: Callable[..., Dict[str, Any]] = factcheck_with_gemini,
                 rules: Optional[FactRules] = None):
        if session_factory is None:
            from config.db import SessionLocal
            session_factory = SessionLocal
        self.session_factory = session_factory
        self.provider = provider
        self._rules = rules
        self._queue: "queue.Queue[tuple]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._recent_auto: Dict[int, float] = {}
        self._recent_lock = threading.Lock()

    @property
    def rules(self) -> FactRules:
        return self._rules or get_rules()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def check_post(self, db: Session, post: Post, force_gemini: bool = False) -> FactCheckResult:
        """Run the pipeline for one post inside the caller's session and flush the result."""
        text = (post.text or "").strip()
        result: Optional[Dict[str, Any]] = None
        model_name = "heuristic-v1"

        hit = self.rules.match(text)
        if hit:
            result = {**hit, "explanation": "Matched a curated fact rule."}
            model_name = "rules-file-v1"

        if result is None and text and (settings.GEMINI_API_KEY or force_gemini):
            answer = self.provider(text)
            if answer.get("ok"):
                result = {
                    "verdict": answer["verdict"],
                    "explanation": answer.get("explanation", ""),
                    "confidence": answer.get("confidence"),
                    "claim": text[:200],
                }
                model_name = settings.GEMINI_MODEL
            else:
                logger.info("Fact-check provider unavailable for post %s: %s", post.id, answer.get("error"))

        if result is None:
            result = {**heuristic_verdict(text), "explanation": ""}

        row = FactCheckResult(
            post_id=post.id,
            claim=result.get("claim") or "",
            verdict=result["verdict"],
            explanation=result.get("explanation") or "",
            confidence=result.get("confidence"),
            topic="",
            evidence=[],
            model=model_name,
        )
        db.add(row)
        db.flush()
        trust.recompute_for_post(db, post)
        logger.info("Fact-checked post %s -> %s (%s, conf=%s)", post.id, row.verdict, model_name, row.confidence)
        return row

    def process(self, post_id: int, force_gemini: bool = False) -> Optional[int]:
        """Process one job with a private session. Returns the result id, if any."""
        if not settings.TRUST_ENABLED:
            return None
        db = self.session_factory()
        try:
            post = db.get(Post, post_id)
            if post is None:
                logger.info("Fact-check skipped, post %s no longer exists", post_id)
                return None
            row = self.check_post(db, post, force_gemini=force_gemini)
            db.commit()
            return row.id
        except Exception:
            db.rollback()
            logger.exception("Fact-check job failed for post %s", post_id)
            return None
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------
    def enqueue(self, post_id: int, force_gemini: bool = False, reason: str = "") -> None:
        if not settings.TRUST_ENABLED:
            return
        self._queue.put((int(post_id), bool(force_gemini)))
        logger.info("Queued fact-check for post %s (%s)", post_id, reason or "manual")

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self) -> int:
        """Process every queued job on the calling thread."""
        n = 0
        while True:
            try:
                post_id, force = self._queue.get_nowait()
            except queue.Empty:
                return n
            self.process(post_id, force_gemini=force)
            self._queue.task_done()
            n += 1

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                post_id, force = self._queue.get(timeout=1.0)
            except queue.Empty:
                continue
            try:
                self.process(post_id, force_gemini=force)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="factcheck-worker", daemon=True)
        self._thread.start()
        logger.info("Started fact-check worker thread")

    def stop(self) -> None:
        self._stop.set()

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    def maybe_auto_factcheck(self, db: Session, post: Post, now: Optional[float] = None) -> bool:
        """Queue a provider-backed check once a post draws enough distinct reactions.

        Returns True when a job was queued.
        """
        if not settings.TRUST_ENABLED:
            return False

        if settings.TRUST_FACTCHECK_ONLY_ONCE:
            exists = db.query(FactCheckResult.id).filter(FactCheckResult.post_id == post.id).first()
            if exists:
                return False
        else:
            latest = (
                db.query(FactCheckResult.verdict)
                .filter(FactCheckResult.post_id == post.id)
                .order_by(FactCheckResult.created_at.desc(), FactCheckResult.id.desc())
                .first()
            )
            if latest and latest[0] != "unverified":
                return False

        total, unique = (
            db.query(func.count(), func.count(func.distinct(PostReaction.user_id)))
            .filter(PostReaction.post_id == post.id)
            .one()
        )
        if total < settings.TRUST_AUTOTRIGGER_REACTS or unique < settings.TRUST_AUTOTRIGGER_UNIQUE_USERS:
            return False

        now = time.time() if now is None else now
        cooldown = settings.TRUST_AUTOTRIGGER_COOLDOWN_MINUTES * 60
        with self._recent_lock:
            last = self._recent_auto.get(post.id, 0.0)
            if now - last < cooldown:
                return False
            self._recent_auto = {pid: ts for pid, ts in self._recent_auto.items() if now - ts < cooldown}
            self._recent_auto[post.id] = now

        self.enqueue(post.id, force_gemini=True, reason="engagement_threshold")
        logger.info("Auto-triggered fact-check for post %s (reactions=%d, unique=%d)", post.id, total, unique)
        return True

    def maybe_on_create(self, post: Post) -> bool:
        if not settings.TRUST_FACTCHECK_ON_CREATE:
            return False
        has_tag = settings.TRUST_TRIGGER_TAG in (post.text or "").lower()
        if settings.TRUST_FACTCHECK_ON_CREATE_TAG_ONLY and not has_tag:
            return False
        self.enqueue(post.id, reason="on_create")
        return True

    def recheck_once(self, age_hours: Optional[float] = None) -> int:
        """Re-run posts whose latest verdict is still `unverified` and older than the age."""
        if not settings.TRUST_ENABLED:
            return 0
        age = settings.TRUST_RECHECK_AGE_HOURS if age_hours is None else age_hours
        cutoff = utcnow() - timedelta(hours=max(0.0, float(age)))
        db = self.session_factory()
        try:
            latest = (
                db.query(FactCheckResult.post_id, func.max(FactCheckResult.id).label("max_id"))
                .group_by(FactCheckResult.post_id)
                .subquery()
            )
            post_ids = [
                pid for (pid,) in (
                    db.query(FactCheckResult.post_id)
                    .join(latest, FactCheckResult.id == latest.c.max_id)
                    .filter(FactCheckResult.verdict == "unverified", FactCheckResult.created_at <= cutoff)
                    .order_by(FactCheckResult.created_at.asc())
                    .limit(RECHECK_BATCH)
                    .all()
                )
            ]
        finally:
            db.close()

        for pid in post_ids:
            self.process(pid)
        if post_ids:
            logger.info("Recheck processed %d unverified posts", len(post_ids))
        return len(post_ids)


_worker: Optional[FactCheckWorker] = None


def get_worker() -> FactCheckWorker:
    global _worker
    if _worker is None:
        _worker = FactCheckWorker()
    return _worker


def set_worker(worker: Optional[FactCheckWorker]) -> None:
    global _worker
    _worker = worker
