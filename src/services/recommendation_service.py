"""Assembly of recommendation collections into normalized movie lists."""
import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from core.http_client import ApiClient
from core.session import SessionStore
from schemas.movie import NormalizedMovie
from schemas.recommendation import USER_RECOMMENDATION_COLLECTIONS, UserRecommendations
from services.exceptions import ApiError
from services.movie_normalizer import MovieNormalizer, get_movie_id

logger = logging.getLogger(__name__)


def unique_records(entries: Any) -> list[Mapping[str, Any]]:
    """
    Usable entries of a raw collection, de-duplicated by movie id.

    Anything that is not a list yields no entries; entries that are not
    objects or carry no id are dropped; for repeated ids the first occurrence wins.
    """
    if not isinstance(entries, list):
        return []
    seen: set[str] = set()
    records = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        movie_id = get_movie_id(entry)
        if not movie_id or movie_id in seen:
            continue
        seen.add(movie_id)
        records.append(entry)
    return records


class RecommendationService:
    """
    Fetches labeled recommendation collections and normalizes each entry.

    Recommendations are an enhancement: every failure is logged and degrades
    to empty collections, never to an exception.
    """

    def __init__(self, api: ApiClient, normalizer: MovieNormalizer, session: SessionStore) -> None:
        self._api = api
        self._normalizer = normalizer
        self._session = session

    async def get_user_recommendations(
        self,
        user_id: int | str | None = None,
        kids_mode: bool | None = None,
    ) -> UserRecommendations:
        """
        Fetch the location, basic and streaming collections for a user.

        Defaults to the signed-in user; with nobody signed in the result is empty.
        A collection that is missing or malformed in the response is empty
        while the others are still returned.
        """
        if user_id is None:
            user = self._session.user
            if user is None:
                logger.debug("recommendations_skipped reason=no_user")
                return UserRecommendations()
            user_id = user.id

        try:
            data = await self._api.get(
                f"/movies/user-recommendations/{user_id}",
                params={"kidsMode": self._kids_mode(kids_mode)},
            )
        except (ApiError, httpx.HTTPError) as e:
            logger.error("user_recommendations_failed user_id=%s error=%s", user_id, e)
            return UserRecommendations()

        if not isinstance(data, Mapping):
            logger.warning("user_recommendations_malformed user_id=%s", user_id)
            return UserRecommendations()

        wire_keys = list(USER_RECOMMENDATION_COLLECTIONS)
        collections = await asyncio.gather(
            *(self._normalize_collection(key, data.get(key)) for key in wire_keys),
        )
        return UserRecommendations(
            **{
                USER_RECOMMENDATION_COLLECTIONS[key]: movies
                for key, movies in zip(wire_keys, collections, strict=True)
            },
        )

    async def get_recommendations(
        self,
        show_id: str,
        kids_mode: bool | None = None,
    ) -> list[NormalizedMovie]:
        """Titles related to a title, normalized. Empty on any failure."""
        try:
            data = await self._api.get(
                f"/movies/{show_id}/recommendations",
                params={"kidsMode": self._kids_mode(kids_mode)},
            )
        except (ApiError, httpx.HTTPError) as e:
            logger.error("recommendations_failed show_id=%s error=%s", show_id, e)
            return []

        # Older API versions wrap the list in an object
        if isinstance(data, Mapping):
            data = data.get("recommendations")
        return await self._normalize_collection("recommendations", data)

    async def _normalize_collection(self, name: str, entries: Any) -> list[NormalizedMovie]:
        if entries is None:
            logger.debug("recommendation_collection_missing name=%s", name)
            return []
        records = unique_records(entries)
        try:
            return await self._normalizer.normalize_many(records)
        except ValidationError as e:
            logger.warning("recommendation_collection_invalid name=%s error=%s", name, e)
            return []

    def _kids_mode(self, kids_mode: bool | None) -> bool:
        return self._session.kids_mode if kids_mode is None else kids_mode
