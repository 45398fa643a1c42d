# src/app.py
import logging
import os
import threading
import time
from pathlib import Path

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from fastapi.openapi.utils import get_openapi

from config import settings
from config.db import engine, SessionLocal, wait_for_db
from model.base import Base
from model import load_all_models

from routes.auth import router as auth_router
from routes.posts import router as posts_router
from routes.users import router as users_router
from routes.groups import router as groups_router
from routes.pages import router as pages_router
from routes.messages import router as messages_router
from routes.notifications import router as notifications_router
from routes.reports import router as reports_router
from routes.factcheck import router as factcheck_router
from routes.trust import router as trust_router
from routes.search import router as search_router
from routes.admin import router as admin_router

load_all_models()

logger = logging.getLogger(__name__)

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

app = FastAPI(title="Mask API", version="1.0.0")

# Uploaded avatars, covers and post images
uploads_dir = Path(settings.UPLOADS_DIR)
uploads_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(uploads_dir)), name="uploads")


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Mask API",
        version="1.0.0",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    # Bearer everywhere unless a route overrides it
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

logger.info("Mask API starting (env=%s)", settings.APP_ENV)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

app.include_router(auth_router, prefix="/api/auth", tags=["Authentication"])
app.include_router(posts_router, prefix="/api/posts", tags=["Posts"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(groups_router, prefix="/api/groups", tags=["Groups"])
app.include_router(pages_router, prefix="/api/pages", tags=["Pages"])
app.include_router(messages_router, prefix="/api/messages", tags=["Messages"])
app.include_router(notifications_router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(reports_router, prefix="/api/reports", tags=["Reports"])
app.include_router(factcheck_router, prefix="/api/factcheck", tags=["Fact-check"])
app.include_router(trust_router, prefix="/api/trust", tags=["Trust"])
app.include_router(search_router, prefix="/api/search", tags=["Search"])
app.include_router(admin_router, prefix="/api/admin")


# --- Exception handlers and security headers ---
def _field(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "form")]
    return ".".join(parts)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [{"field": _field(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    logger.warning("Validation error on %s %s: %s", request.method, request.url.path, errors)
    return JSONResponse(status_code=400, content={
        "code": "validation_error",
        "message": "Validation error",
        "errors": errors,
    })


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    # 4xx/5xx raised intentionally in code
    level = logging.WARNING if 400 <= exc.status_code < 500 else logging.ERROR
    logger.log(level, "HTTPException %s on %s %s: %s", exc.status_code, request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": "http_error", "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return response


def _start_loop(name: str, interval_sec: float, tick) -> threading.Thread:
    """Run `tick()` every `interval_sec` in a daemon thread; errors are logged and the loop continues."""

    def _run():
        while True:
            time.sleep(interval_sec)
            try:
                tick()
            except Exception as e:
                logger.error("%s tick failed: %s", name, e, exc_info=True)

    thread = threading.Thread(target=_run, name=name, daemon=True)
    thread.start()
    logger.info("Started %s loop (every %ss)", name, interval_sec)
    return thread


def _retention_tick():
    from src.retention import run_retention_tick
    db = SessionLocal()
    try:
        run_retention_tick(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _motivation_tick():
    from src.motivation import run_cycle
    db = SessionLocal()
    try:
        run_cycle(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def start_background_workers():
    from src.factcheck.worker import get_worker

    if settings.TRUST_ENABLED:
        get_worker().start()
        if settings.TRUST_RECHECK_INTERVAL_MINUTES > 0:
            _start_loop("factcheck-recheck", settings.TRUST_RECHECK_INTERVAL_MINUTES * 60, get_worker().recheck_once)
    if settings.POST_RETENTION_INTERVAL_MIN > 0:
        _start_loop("post-retention", settings.POST_RETENTION_INTERVAL_MIN * 60, _retention_tick)
    if settings.MOTIVATION_ENABLED:
        _start_loop("motivation", settings.MOTIVATION_INTERVAL_MINUTES * 60, _motivation_tick)


# NOTE: FastAPI recommends lifespan context for newer apps; startup event is fine here.
@app.on_event("startup")
def _startup():
    wait_for_db()

    # Prefer Alembic; create_all only when explicitly enabled
    if settings.DEV_CREATE_SCHEMA:
        Base.metadata.create_all(engine)
        logger.info("DB metadata ensured via SQLAlchemy (dev mode).")
    else:
        logger.info("Skipping Base.metadata.create_all(); use Alembic migrations for schema.")

    if settings.START_BACKGROUND_WORKERS:
        start_background_workers()


@app.get("/health")
@app.get("/api/health")
def health():
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("src.app:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
