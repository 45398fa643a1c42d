# src/client/api.py
"""
Thin HTTP client for the Mask API.

Every failed call raises ApiError with a message suitable for a toast.
No call is retried.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from src.client.bookmarks import BookmarkCache
from src.client.session import ClientSession

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again."


class ApiError(Exception):
    """Raised for any non-2xx response or transport failure."""

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body
        self.post: Optional[Dict[str, Any]] = None


def error_message(body: Any, fallback: str = GENERIC_ERROR) -> str:
    """Pick `message`, then `error`, from a JSON error body."""
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return fallback


class MaskClient:
    """
    Example Usage:
        session = ClientSession()
        client = MaskClient("http://localhost:8000", session)
        client.login("alice", "secret123")
        posts = client.feed(page=1)
    """

    def __init__(self, base_url: str, session: Optional[ClientSession] = None,
                 http: Optional[requests.Session] = None, timeout: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self.session = session or ClientSession()
        self.http = http or requests.Session()
        self.http.headers.update({"Accept": "application/json"})
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = {**self.session.auth_headers(), **kwargs.pop("headers", {})}
        try:
            response = self.http.request(
                method, f"{self.base_url}/api{path}", headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.warning("Request %s %s failed: %s", method, path, e)
            raise ApiError(GENERIC_ERROR) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            message = error_message(body)
            logger.info("API %s %s -> %s: %s", method, path, response.status_code, message)
            if response.status_code == 401 and self.session.active:
                self.session.clear()
            raise ApiError(message, status=response.status_code, body=body)
        return body

    # --- auth ---
    def login(self, identifier: str, password: str) -> Dict[str, Any]:
        data = self._request("POST", "/auth/login", json={"identifier": identifier, "password": password})
        self.session.start(data["token"], data["user"])
        self.session.bookmarks = BookmarkCache(self.bookmark_ids)
        return data["user"]

    def logout(self) -> None:
        try:
            self._request("POST", "/auth/logout")
        finally:
            self.session.clear()

    # --- posts ---
    def feed(self, page: int = 1, limit: int = 20) -> List[Dict[str, Any]]:
        return self._request("GET", "/posts", params={"page": page, "limit": limit})

    def trending(self, page: int = 1, limit: int = 20) -> List[Dict[str, Any]]:
        return self._request("GET", "/posts/trending", params={"page": page, "limit": limit})

    def get_post(self, post_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/posts/{post_id}")

    def create_post(self, text: str) -> Dict[str, Any]:
        return self._request("POST", "/posts", data={"text": text})

    def comment(self, post_id: int, text: str) -> Dict[str, Any]:
        return self._request("POST", f"/posts/{post_id}/comment", json={"text": text})

    def share(self, post_id: int) -> Dict[str, Any]:
        return self._request("POST", f"/posts/{post_id}/share")

    def react(self, post_id: int, reaction: str) -> Dict[str, Any]:
        """Toggle a reaction. On failure the canonical post is re-fetched onto `ApiError.post`."""
        try:
            return self._request("POST", f"/posts/{post_id}/react", json={"type": reaction})
        except ApiError as e:
            try:
                e.post = self.get_post(post_id)
            except ApiError as refetch:
                logger.info("Could not refresh post %s after failed reaction: %s", post_id, refetch.message)
            raise

    # --- bookmarks ---
    def bookmark_ids(self) -> List[int]:
        return self._request("GET", "/users/me/bookmarks", params={"ids": 1})["ids"]

    def toggle_bookmark(self, post_id: int) -> bool:
        bookmarked = bool(self._request("POST", f"/users/me/bookmarks/{post_id}")["bookmarked"])
        if self.session.bookmarks is not None:
            self.session.bookmarks.set(post_id, bookmarked)
        return bookmarked
