# src/utils.py
import logging
import secrets, string
import time
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from passlib.context import CryptContext
import jwt
from config.settings import JWT_SECRET, JWT_ALG, JWT_ISS, ACCESS_TTL_MIN, BCRYPT_ROUNDS

logger = logging.getLogger(__name__)

PWD_CONTEXT = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)

SAFE_ALPHABET = string.ascii_uppercase + string.digits

def _now_utc() -> datetime:
    return datetime.now(timezone.utc)

def gen_token_urlsafe(n_bytes: int = 32) -> str:
    """High-entropy, URL-safe token (jti, filenames)."""
    return secrets.token_urlsafe(n_bytes)

def gen_public_id(prefix: str = "USR") -> str:
    """Typed public id: PREFIX-TIMESTAMP-RANDOM, e.g. USR-1699564234-A7K9M2."""
    rand = "".join(secrets.choice(SAFE_ALPHABET) for _ in range(6))
    return f"{prefix}-{int(time.time())}-{rand}"

def gen_numeric_code(digits: int = 6) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(digits))

def hash_password(pw: str) -> str:
    if not pw:
        raise ValueError("Password must not be empty")
    return PWD_CONTEXT.hash(pw)

def verify_password(pw: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return PWD_CONTEXT.verify(pw, hashed)
    except ValueError:
        logger.warning("Password verification failed due to malformed hash")
        return False

def make_access_token(user_public_id: str, user_id: int, role: str, ttl_min: Optional[int] = None) -> str:
    """Issue an access token.

    `sub` is the public id, `uid` the numeric id and `role` is informational only;
    the role stored on the user row is what authorizes admin routes.
    """
    if not user_public_id or user_id is None:
        raise ValueError("user_public_id and user_id are required")
    issued_at = _now_utc()
    payload: Dict[str, Any] = {
        "sub": user_public_id,
        "uid": int(user_id),
        "role": role or "user",
        "typ": "access",
        "iss": JWT_ISS,
        "iat": int(issued_at.timestamp()),
        "nbf": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(minutes=ttl_min or ACCESS_TTL_MIN)).timestamp()),
        "jti": gen_token_urlsafe(18),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)

def decode_access_token(token: str, verify_iss: bool = True) -> Dict[str, Any]:
    """Decode & minimally validate an access token. Raises jwt exceptions on failure."""
    options = {"require": ["exp", "iat", "nbf", "sub", "typ"], "verify_signature": True}
    claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG], options=options, leeway=10)
    if verify_iss and claims.get("iss") != JWT_ISS:
        raise jwt.InvalidIssuerError("Invalid token issuer")
    if claims.get("typ") != "access":
        raise jwt.InvalidTokenError("Unexpected token type")
    return claims
