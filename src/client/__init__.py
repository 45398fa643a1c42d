from src.client.api import ApiError, MaskClient, error_message
from src.client.bookmarks import BookmarkCache
from src.client.feed import FeedPager
from src.client.session import ClientSession
from src.client.wellness import WellnessSettings, WellnessTimer, MemoryStore

__all__ = [
    "ApiError",
    "MaskClient",
    "error_message",
    "BookmarkCache",
    "FeedPager",
    "ClientSession",
    "WellnessSettings",
    "WellnessTimer",
    "MemoryStore",
]
