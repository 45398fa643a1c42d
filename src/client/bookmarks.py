# src/client/bookmarks.py
import time
from typing import Callable, Iterable, Optional, Set

BOOKMARK_TTL_SEC = 60


class BookmarkCache:
    """
    Short-lived copy of the viewer's bookmarked post ids, so rendering a feed
    does not ask the server once per post.
    """

    def __init__(self, fetch_ids: Callable[[], Iterable[int]], ttl: float = BOOKMARK_TTL_SEC,
                 clock: Callable[[], float] = time.monotonic):
        self._fetch = fetch_ids
        self.ttl = ttl
        self._clock = clock
        self._ids: Set[int] = set()
        self._loaded_at: Optional[float] = None

    @property
    def fresh(self) -> bool:
        return self._loaded_at is not None and self._clock() - self._loaded_at < self.ttl

    def ids(self) -> Set[int]:
        if not self.fresh:
            self._ids = {int(i) for i in self._fetch()}
            self._loaded_at = self._clock()
        return set(self._ids)

    def is_bookmarked(self, post_id: int) -> bool:
        return int(post_id) in self.ids()

    def set(self, post_id: int, bookmarked: bool) -> None:
        """Write the server's answer after a toggle; does not extend the TTL."""
        if bookmarked:
            self._ids.add(int(post_id))
        else:
            self._ids.discard(int(post_id))

    def invalidate(self) -> None:
        self._loaded_at = None
