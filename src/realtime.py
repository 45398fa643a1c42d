# src/realtime.py
"""
Per-process WebSocket registry for new-message pushes.

Sync route handlers run in the threadpool, so they hand events to
`ConnectionHub.publish`, which schedules the send on the event loop the
sockets belong to.
"""
import asyncio
import logging
import threading
from collections import defaultdict
from typing import Dict, Set, Iterable, Any, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionHub:
    def __init__(self):
        self._sockets: Dict[int, Set[WebSocket]] = defaultdict(set)
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def attach_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    async def connect(self, user_id: int, ws: WebSocket) -> None:
        await ws.accept()
        self.attach_loop(asyncio.get_running_loop())
        with self._lock:
            self._sockets[user_id].add(ws)
        logger.info("WebSocket connected for user %s", user_id)

    def disconnect(self, user_id: int, ws: WebSocket) -> None:
        with self._lock:
            conns = self._sockets.get(user_id)
            if conns is not None:
                conns.discard(ws)
                if not conns:
                    self._sockets.pop(user_id, None)
        logger.info("WebSocket closed for user %s", user_id)

    def connection_count(self, user_id: int) -> int:
        with self._lock:
            return len(self._sockets.get(user_id, ()))

    async def send(self, user_ids: Iterable[int], event: Dict[str, Any]) -> int:
        delivered = 0
        for uid in set(user_ids):
            with self._lock:
                targets = list(self._sockets.get(uid, ()))
            for ws in targets:
                try:
                    await ws.send_json(event)
                    delivered += 1
                except (RuntimeError, ConnectionError) as e:
                    logger.info("Dropping dead socket for user %s: %s", uid, e)
                    self.disconnect(uid, ws)
        return delivered

    def publish(self, user_ids: Iterable[int], event: Dict[str, Any]) -> None:
        """Thread-safe fire-and-forget push."""
        user_ids = list(user_ids)
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            asyncio.run_coroutine_threadsafe(self.send(user_ids, event), loop)
        except RuntimeError as e:
            logger.warning("Could not schedule WebSocket push: %s", e)


hub = ConnectionHub()
