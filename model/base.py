# model/base.py
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Integer
from sqlalchemy.dialects.mysql import BIGINT as MyBIGINT
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Unsigned BIGINT on MySQL; plain INTEGER on SQLite so rowid autoincrement works.
IdType = BigInteger().with_variant(MyBIGINT(unsigned=True), "mysql").with_variant(Integer(), "sqlite")


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are stored without tz info)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
