# routes/admin/__init__.py
"""
Admin console routers combined into one.

- system: health, bootstrap, operator password reset, broadcast
- reports: moderation queue (moderators too)
- users: account search, disable, anonymize
- communities: group and page moderation
- motivation: quote catalogue and delivery controls
- factchecks: fact-check results and manual runs

The main app.py adds the /api/admin prefix.
"""
from fastapi import APIRouter

from .system import router as system_router
from .reports import router as reports_router
from .users import router as users_router
from .communities import router as communities_router
from .motivation import router as motivation_router
from .factchecks import router as factchecks_router

router = APIRouter()

router.include_router(system_router, tags=["Admin - System"])
router.include_router(reports_router, tags=["Admin - Reports"])
router.include_router(users_router, tags=["Admin - Users"])
router.include_router(communities_router, tags=["Admin - Communities"])
router.include_router(motivation_router, tags=["Admin - Motivation"])
router.include_router(factchecks_router, tags=["Admin - Fact-checks"])

__all__ = ["router"]
