"""Service layer for movie ratings: fetching, aggregation and rating mutations."""
import logging
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from core.http_client import ApiClient
from core.ratings_cache import RatingsCache
from core.session import SessionStore
from schemas.rating import RatingCreate, RatingRecord, RatingSummary
from services.exceptions import ApiError, NotAuthenticatedError

logger = logging.getLogger(__name__)

_entry_list_adapter = TypeAdapter(list[Any])


def average_rating(ratings: Sequence[RatingRecord]) -> float:
    """
    Arithmetic mean of the scores, 0.0 for an empty list.

    Duplicate (user, title) records are averaged like any other record.
    """
    if not ratings:
        return 0.0
    return sum(r.rating for r in ratings) / len(ratings)


def parse_ratings(data: Any) -> list[RatingRecord]:
    """
    Validate an API rating list. A null body is an empty list.

    Malformed records are logged and skipped so one bad entry does not hide
    the rest of a title's ratings.

    Raises:
        ValidationError: If the body is not a list.
    """
    if data is None:
        return []
    entries = _entry_list_adapter.validate_python(data)
    ratings = []
    for index, entry in enumerate(entries):
        try:
            ratings.append(RatingRecord.model_validate(entry))
        except ValidationError as e:
            logger.warning("rating_record_skipped index=%d error=%s", index, e)
    return ratings


class RatingService:
    """
    Ratings operations against the catalog API.

    Every successful fetch of a title's ratings replaces that title's entry in
    the shared RatingsCache, so other views can re-derive aggregates without
    another request.
    """

    def __init__(self, api: ApiClient, cache: RatingsCache, session: SessionStore) -> None:
        self._api = api
        self._cache = cache
        self._session = session

    @property
    def cache(self) -> RatingsCache:
        """The shared ratings cache."""
        return self._cache

    async def get_ratings_by_movie(self, show_id: str) -> list[RatingRecord]:
        """
        Fetch every rating of a title and publish it to the cache.

        Raises:
            ApiError: If the API rejects the request.
            httpx.HTTPError: On transport failure.
            ValidationError: If the API returns malformed rating records.
        """
        data = await self._api.get(
            f"/movierating/movie/{show_id}", entity_type="movie", entity_id=show_id,
        )
        ratings = parse_ratings(data)
        self._cache.set(show_id, ratings)
        return ratings

    async def aggregate(self, show_id: str) -> RatingSummary:
        """
        Fetch a title's ratings and compute the average.

        Never raises: a ratings outage degrades to a zero rating so catalog
        browsing keeps working.
        """
        try:
            ratings = await self.get_ratings_by_movie(show_id)
        except (ApiError, httpx.HTTPError, ValidationError) as e:
            logger.warning(
                "ratings_aggregation_failed show_id=%s error=%s", show_id, e, exc_info=True,
            )
            return RatingSummary(average_rating=0.0, ratings=[])
        return RatingSummary(average_rating=average_rating(ratings), ratings=ratings)

    def cached_summary(self, show_id: str) -> RatingSummary | None:
        """
        Summary of the last fetched ratings of a title, without a request.

        Lets a detail view reuse what a list view already fetched. None when
        the title's ratings have not been fetched yet.
        """
        ratings = self._cache.get(show_id)
        if ratings is None:
            return None
        return RatingSummary(average_rating=average_rating(ratings), ratings=ratings)

    async def get_user_ratings(self, user_id: int | str | None = None) -> list[RatingRecord]:
        """
        Fetch every rating written by a user (the signed-in user by default).

        Raises:
            NotAuthenticatedError: If no user_id is given and nobody is signed in.
        """
        user_id = self._resolve_user_id(user_id)
        data = await self._api.get(
            f"/movierating/user/{user_id}", entity_type="user", entity_id=str(user_id),
        )
        return parse_ratings(data)

    async def rate_movie(
        self,
        show_id: str,
        rating: int,
        review: str | None = None,
    ) -> RatingSummary:
        """
        Submit the signed-in user's rating of a title.

        The review is sent unmodified; the API sanitizes it. After the API
        accepts the rating, the title's ratings are re-fetched so the cache and
        the returned average include the new score.

        Raises:
            ValidationError: If the score is outside 1-5.
            ApiError: If the API rejects the rating.
        """
        payload = RatingCreate(show_id=show_id, rating=rating, review=review)
        await self._api.post(
            "/movierating",
            json=payload.model_dump(by_alias=True),
            entity_type="movie",
            entity_id=show_id,
        )
        logger.info("rating_submitted show_id=%s rating=%d", show_id, rating)
        return await self.aggregate(show_id)

    async def delete_rating(self, show_id: str, user_id: int | str | None = None) -> RatingSummary:
        """
        Delete a user's rating of a title (the signed-in user by default).

        Returns:
            The re-fetched ratings summary of the title.
        """
        user_id = self._resolve_user_id(user_id)
        await self._api.delete(
            f"/movierating/{user_id}/{show_id}", entity_type="rating", entity_id=show_id,
        )
        logger.info("rating_deleted show_id=%s user_id=%s", show_id, user_id)
        return await self.aggregate(show_id)

    async def delete_single_rating(
        self,
        rating_id: int,
        show_id: str | None = None,
    ) -> RatingSummary | None:
        """
        Delete one rating record by its id.

        Pass the rating's show_id to have the title's ratings re-fetched;
        without it the cache cannot know which title changed and is left as is.
        """
        await self._api.delete(
            f"/movierating/single/{rating_id}", entity_type="rating", entity_id=str(rating_id),
        )
        logger.info("rating_deleted rating_id=%s", rating_id)
        if show_id is None:
            return None
        return await self.aggregate(show_id)

    def _resolve_user_id(self, user_id: int | str | None) -> int | str:
        if user_id is not None:
            return user_id
        user = self._session.user
        if user is None:
            raise NotAuthenticatedError
        return user.id
