# config/db.py
import logging
import re
import time

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from config.settings import DB_URL, DB_CONNECT_RETRIES, DB_CONNECT_RETRY_DELAY

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}

engine = create_engine(
    DB_URL,
    pool_pre_ping=True,
    future=True,
    connect_args=_connect_args,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def redact(url: str) -> str:
    """Hide the password part of a DB URL for logging."""
    return re.sub(r"//([^:/@]+):([^@]+)@", r"//\1:***@", str(url or ""))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def wait_for_db(bind=None, retries: int = DB_CONNECT_RETRIES, delay: float = DB_CONNECT_RETRY_DELAY, sleep=time.sleep) -> bool:
    """Try to open a connection up to `retries` times with a constant `delay` between attempts.

    Returns True once connected; re-raises the last OperationalError when every attempt fails.
    """
    bind = bind or engine
    attempts = max(1, int(retries))
    last_err = None
    for attempt in range(1, attempts + 1):
        try:
            with bind.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database reachable (%s) on attempt %d/%d", redact(str(bind.url)), attempt, attempts)
            return True
        except OperationalError as e:
            last_err = e
            logger.warning("DB connect attempt %d/%d failed: %s", attempt, attempts, e.__class__.__name__)
            if attempt < attempts:
                sleep(delay)
    logger.error("All %d DB connection attempts failed", attempts)
    raise last_err
