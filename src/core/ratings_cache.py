"""Shared ratings store so independent views can reuse fetched rating lists."""
import logging

from schemas.rating import RatingRecord

logger = logging.getLogger(__name__)


class RatingsCache:
    """
    Session-scoped mapping of title id to its last fetched rating list.

    Constructed once by the client at startup and passed to every service that
    fetches ratings; discarded with the client. Writes are last-write-wins: when
    two fetches for the same title finish out of order, the cache holds
    whichever finished last. Readers must not block on it being current.
    """

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._ratings: dict[str, list[RatingRecord]] = {}

    def get(self, show_id: str) -> list[RatingRecord] | None:
        """
        Get the cached rating list for a title.

        Returns:
            A copy of the cached list, or None on cache miss.
        """
        ratings = self._ratings.get(show_id)
        if ratings is None:
            logger.debug("ratings_cache_miss show_id=%s", show_id)
            return None
        logger.debug("ratings_cache_hit show_id=%s count=%d", show_id, len(ratings))
        return list(ratings)

    def set(self, show_id: str, ratings: list[RatingRecord]) -> None:
        """Replace the cached list for a title. Prior entries are overwritten, never merged."""
        self._ratings[show_id] = list(ratings)
        logger.debug("ratings_cache_set show_id=%s count=%d", show_id, len(ratings))

    def invalidate(self, show_id: str) -> None:
        """Drop one title's entry."""
        self._ratings.pop(show_id, None)

    def clear(self) -> None:
        """Drop every entry."""
        self._ratings.clear()

    def __contains__(self, show_id: object) -> bool:
        return show_id in self._ratings

    def __len__(self) -> int:
        return len(self._ratings)
