# src/client/session.py
"""
Client-side session context.

Everything the browser app kept in ambient local storage (token, admin key,
current user, bookmark cache) lives on one object that is filled at login
and emptied at logout.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class ClientSession:
    def __init__(self):
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self.admin_key: Optional[str] = None
        self.bookmarks = None
        self._on_clear: List[Callable[[], None]] = []

    @property
    def active(self) -> bool:
        return bool(self.token)

    @property
    def user_id(self) -> Optional[int]:
        return (self.user or {}).get("id")

    def start(self, token: str, user: Dict[str, Any]) -> None:
        self.token = token
        self.user = user
        self.bookmarks = None
        logger.info("Client session started for user %s", user.get("id"))

    def on_clear(self, callback: Callable[[], None]) -> None:
        """Register a hook that runs whenever the session is cleared."""
        self._on_clear.append(callback)

    def clear(self) -> None:
        was_active = self.active
        self.token = None
        self.user = None
        self.admin_key = None
        self.bookmarks = None
        for callback in list(self._on_clear):
            callback()
        if was_active:
            logger.info("Client session cleared")

    def auth_headers(self) -> Dict[str, str]:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.admin_key:
            headers["x-admin-key"] = self.admin_key
        return headers
