# src/client/feed.py
import logging
from typing import Any, Callable, Dict, List, Set

logger = logging.getLogger(__name__)


class FeedPager:
    """
    Offset pager for the for-you and trending feeds.

    Pages can overlap when posts are inserted between requests, so every
    post id already handed out is dropped from later pages.
    """

    def __init__(self, fetch_page: Callable[[int, int], List[Dict[str, Any]]], limit: int = 20):
        self._fetch = fetch_page
        self.limit = limit
        self.reset()

    def reset(self) -> None:
        self.page = 0
        self.has_more = True
        self.items: List[Dict[str, Any]] = []
        self._seen: Set[int] = set()

    def next(self) -> List[Dict[str, Any]]:
        """Fetch the next page and return only posts not seen before."""
        if not self.has_more:
            return []
        page = self.page + 1
        batch = self._fetch(page, self.limit) or []
        self.page = page
        self.has_more = len(batch) >= self.limit

        fresh = []
        for post in batch:
            pid = post.get("id")
            if pid in self._seen:
                continue
            self._seen.add(pid)
            fresh.append(post)
        self.items.extend(fresh)
        if len(fresh) < len(batch):
            logger.debug("Dropped %d duplicate posts on page %d", len(batch) - len(fresh), page)
        return fresh
