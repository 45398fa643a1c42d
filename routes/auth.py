# routes/auth.py
from datetime import timedelta
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from config import settings
from config.db import get_db
from config.dependencies import require_user
from model.base import utcnow
from model.user import Users, UserCredential, EmailOTP
from schema.auth import SignupIn, SignupCodeIn, LoginIn, ChangePasswordIn
from src.email_service import get_email_service
from src.serializers import serialize_user
from src.utils import gen_public_id, gen_numeric_code, hash_password, verify_password, make_access_token, PWD_CONTEXT


logger = logging.getLogger(__name__)

SIGNUP_RESEND_SECONDS = 60

router = APIRouter()


def _redact(s: Optional[str], keep: int = 3) -> str:
    if not s:
        return ""
    s = str(s)
    return s[:keep] + "…" if len(s) > keep else s


def issue_session(response: Response, user: Users) -> str:
    """Mint an access token and mirror it into the httponly cookie."""
    token = make_access_token(user.public_id, user.id, user.role)
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="none" if settings.COOKIE_SECURE else "lax",
        secure=settings.COOKIE_SECURE,
        path="/",
        max_age=settings.ACCESS_TTL_MIN * 60,
    )
    return token


def create_account(db: Session, pseudonym: str, password: str, email: Optional[str] = None,
                   role: str = "user", email_verified: bool = False) -> Users:
    u = Users(
        public_id=gen_public_id("USR"),
        pseudonym=pseudonym,
        email=email,
        role=role,
        email_verified=email_verified,
    )
    db.add(u)
    db.flush()
    db.add(UserCredential(
        user_id=u.id,
        password_hash=hash_password(password),
        last_password_change=utcnow(),
    ))
    return u


def _pseudonym_taken(db: Session, pseudonym: str) -> bool:
    return db.query(Users.id).filter(func.lower(Users.pseudonym) == pseudonym.lower()).first() is not None


@router.post("/request-signup-code", openapi_extra={"security": []})
def request_signup_code(body: SignupCodeIn, db: Session = Depends(get_db)):
    email = body.email
    if db.query(Users.id).filter(Users.email == email).first():
        raise HTTPException(status_code=409, detail="Email already in use")

    now = utcnow()
    recent = (
        db.query(EmailOTP)
        .filter(EmailOTP.email == email, EmailOTP.purpose == "signup",
                EmailOTP.created_at >= now - timedelta(seconds=SIGNUP_RESEND_SECONDS))
        .first()
    )
    if recent:
        return {"ok": True, "throttled": True}

    code = gen_numeric_code(6)
    db.query(EmailOTP).filter(EmailOTP.email == email, EmailOTP.purpose == "signup").delete()
    db.add(EmailOTP(
        email=email,
        code_hash=PWD_CONTEXT.hash(code),
        purpose="signup",
        expires_at=now + timedelta(minutes=settings.SIGNUP_CODE_TTL_MIN),
    ))
    db.commit()

    if not get_email_service().send_signup_code(email, code):
        raise HTTPException(status_code=500, detail="Email send failed")
    logger.info("Signup code issued for %s", _redact(email))
    return {"ok": True}


def _consume_signup_code(db: Session, email: Optional[str], code: Optional[str]) -> None:
    if not email:
        raise HTTPException(status_code=400, detail="Valid email required")
    if not code:
        raise HTTPException(status_code=400, detail="Verification code required")
    otp = (
        db.query(EmailOTP)
        .filter(EmailOTP.email == email, EmailOTP.purpose == "signup")
        .order_by(EmailOTP.created_at.desc())
        .first()
    )
    if not otp or otp.expires_at < utcnow():
        raise HTTPException(status_code=400, detail="Verification code expired")
    if not verify_password(code, otp.code_hash):
        otp.attempts = (otp.attempts or 0) + 1
        db.commit()
        raise HTTPException(status_code=400, detail="Invalid verification code")
    db.delete(otp)


@router.post("/signup", openapi_extra={"security": []})
def signup(body: SignupIn, response: Response, db: Session = Depends(get_db)):
    logger.info("Signup requested for pseudonym=%s", _redact(body.pseudonym))
    clash = _pseudonym_taken(db, body.pseudonym)
    if not clash and body.email:
        clash = db.query(Users.id).filter(Users.email == body.email).first() is not None
    if clash:
        logger.warning("Signup conflict for pseudonym=%s", _redact(body.pseudonym))
        raise HTTPException(status_code=409, detail="Pseudonym or email already in use")

    verified = False
    if settings.REQUIRE_EMAIL_VERIFICATION:
        _consume_signup_code(db, body.email, body.code)
        verified = True

    u = create_account(db, body.pseudonym, body.password, body.email, email_verified=verified)
    db.commit()
    db.refresh(u)
    token = issue_session(response, u)
    logger.info("User created id=%s public_id=%s", u.id, u.public_id)
    return {"user": serialize_user(u, private=True), "token": token}


@router.post("/login", openapi_extra={"security": []})
def login(body: LoginIn, response: Response, db: Session = Depends(get_db)):
    ident = body.identifier.strip()
    u = (
        db.query(Users)
        .filter(or_(func.lower(Users.pseudonym) == ident.lower(), Users.email == ident.lower()))
        .first()
    )
    if not u:
        logger.warning("Login failed: unknown identifier %s", _redact(ident))
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if u.deleted_at is not None:
        raise HTTPException(status_code=403, detail="Account disabled")

    creds = u.creds
    if not creds or not verify_password(body.password, creds.password_hash):
        logger.warning("Login failed: bad password for user id=%s", u.id)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = issue_session(response, u)
    logger.info("Login ok for user id=%s", u.id)
    return {"user": serialize_user(u, private=True), "token": token}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.COOKIE_NAME, path="/")
    return {"ok": True}


@router.get("/me")
def me(current: Users = Depends(require_user)):
    return {"user": serialize_user(current, private=True)}


@router.post("/change-password")
def change_password(body: ChangePasswordIn, db: Session = Depends(get_db), current: Users = Depends(require_user)):
    creds = current.creds
    if not creds or not verify_password(body.current, creds.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    creds.password_hash = hash_password(body.next)
    creds.last_password_change = utcnow()
    db.commit()
    logger.info("Password changed for user id=%s", current.id)
    return {"ok": True}
