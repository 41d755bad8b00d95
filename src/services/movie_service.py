"""Service layer for catalog titles: browsing, lookups and admin mutations."""
import asyncio
import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import ValidationError

from core.http_client import ApiClient
from core.session import SessionStore
from schemas.movie import MovieCreate, MoviePage, MovieUpdate, NormalizedMovie, RawCatalogRecord
from services.exceptions import AdminRequiredError, ApiError
from services.movie_normalizer import MovieNormalizer, get_movie_id, project_movie

logger = logging.getLogger(__name__)

# MovieUpdate attribute -> catalog record field
_UPDATE_FIELDS = {
    "title": "title",
    "description": "description",
    "year": "releaseYear",
    "director": "director",
    "cast": "cast",
    "duration": "duration",
    "country": "country",
    "content_rating": "rating",
    "media_type": "type",
    "image_url": "imageUrl",
}


def generate_movie_id() -> str:
    """Id for admin-created titles: "m" followed by the epoch milliseconds."""
    return f"m{int(time.time() * 1000)}"


class MovieService:
    """
    Catalog operations against the catalog API.

    Reads return normalized records; kids mode defaults to the session's
    effective preference. Create, update and delete require the admin role
    and fail loudly: they are user-initiated and must never fail silently.
    """

    def __init__(
        self,
        api: ApiClient,
        normalizer: MovieNormalizer,
        session: SessionStore,
        default_page_size: int = 10,
    ) -> None:
        self._api = api
        self._normalizer = normalizer
        self._session = session
        self._default_page_size = default_page_size

    async def get_movies(
        self,
        page: int = 1,
        page_size: int | None = None,
        genre: str | None = None,
        search: str | None = None,
        kids_mode: bool | None = None,
    ) -> MoviePage:
        """
        Fetch one page of titles, normalized, with per-title ratings fetched concurrently.

        Empty genre/search filters are not sent.
        """
        params = {
            "page": page,
            "pageSize": page_size or self._default_page_size,
            "genre": genre or None,
            "search": search or None,
            "kidsMode": self._kids_mode(kids_mode),
        }
        data = await self._api.get("/movietitle", params=params) or {}
        records = data.get("movies") or []
        movies = await self._normalizer.normalize_many(records)
        return MoviePage(
            movies=movies,
            total_count=data.get("totalCount", len(movies)),
            total_pages=data.get("totalPages", 1 if movies else 0),
            current_page=data.get("currentPage", page),
            page_size=data.get("pageSize", params["pageSize"]),
        )

    async def get_raw_movie(self, show_id: str, kids_mode: bool | None = None) -> RawCatalogRecord:
        """Fetch a catalog record as the API returns it."""
        return await self._api.get(
            f"/movietitle/{show_id}",
            params={"kidsMode": self._kids_mode(kids_mode)},
            entity_type="movie",
            entity_id=show_id,
        )

    async def get_movie(self, show_id: str, kids_mode: bool | None = None) -> NormalizedMovie:
        """
        Fetch and normalize one title.

        Raises:
            ApiError: If the title cannot be fetched (ratings failures do not raise).
        """
        record = await self.get_raw_movie(show_id, kids_mode)
        return await self._normalizer.normalize(record)

    async def get_movies_by_ids(
        self,
        show_ids: Iterable[str],
        kids_mode: bool | None = None,
    ) -> list[NormalizedMovie]:
        """
        Fetch several titles concurrently, e.g. for a trending list.

        Duplicate ids are fetched once, order of first appearance is kept, and
        titles that fail to load are logged and left out.
        """
        unique_ids = list(dict.fromkeys(show_ids))
        results = await asyncio.gather(
            *(self._get_movie_or_none(show_id, kids_mode) for show_id in unique_ids),
        )
        return [movie for movie in results if movie is not None]

    async def _get_movie_or_none(
        self,
        show_id: str,
        kids_mode: bool | None,
    ) -> NormalizedMovie | None:
        try:
            return await self.get_movie(show_id, kids_mode)
        except (ApiError, httpx.HTTPError, ValidationError) as e:
            logger.warning("movie_fetch_failed show_id=%s error=%s", show_id, e)
            return None

    async def get_genres(self) -> list[str]:
        """Genre names offered by the API for filtering."""
        return await self._api.get("/movietitle/genres") or []

    async def get_types(self) -> list[str]:
        """Media types (e.g. Movie, TV Show) known to the API."""
        return await self._api.get("/movietitle/types") or []

    async def get_countries(self) -> list[str]:
        """Countries known to the API."""
        return await self._api.get("/movietitle/countries") or []

    async def create_movie(self, movie: MovieCreate) -> NormalizedMovie:
        """
        Create a title from admin input.

        The genre label is stored as a one-hot category flag. A new title has
        no ratings, so its average is 0.

        Raises:
            AdminRequiredError: If the session lacks the admin role.
            ApiError: If the API rejects the title.
        """
        self._require_admin("create movies")
        show_id = movie.movie_id or generate_movie_id()
        record: RawCatalogRecord = {
            "showId": show_id,
            "type": movie.media_type or "Movie",
            "title": movie.title,
            "director": movie.director,
            "cast": movie.cast,
            "country": movie.country,
            "releaseYear": movie.year,
            "rating": movie.content_rating,
            "duration": movie.duration,
            "description": movie.description,
        }
        if movie.image_url:
            record["imageUrl"] = movie.image_url
        record = self._normalizer.genres.with_genre(record, movie.genre)

        created = await self._api.post("/movietitle", json=record, entity_type="movie")
        logger.info("movie_created show_id=%s", show_id)
        result = created if isinstance(created, dict) and get_movie_id(created) else record
        return project_movie(result, self._normalizer.genres.resolve(result), 0.0)

    async def update_movie(self, show_id: str, update: MovieUpdate) -> NormalizedMovie:
        """
        Update a title from admin input.

        The current record is fetched first and only provided (non-empty)
        fields are overwritten. When a genre is given, every category flag is
        reset and the flag for that genre is set.

        Raises:
            AdminRequiredError: If the session lacks the admin role.
            ApiError: If the title does not exist or the API rejects the update.
        """
        self._require_admin("update movies")
        existing = await self.get_raw_movie(show_id)
        record = dict(existing)
        for attr, field in _UPDATE_FIELDS.items():
            value = getattr(update, attr)
            if value:
                record[field] = value
        if update.genre:
            record = self._normalizer.genres.with_genre(record, update.genre)

        updated = await self._api.put(
            f"/movietitle/{show_id}", json=record, entity_type="movie", entity_id=show_id,
        )
        logger.info("movie_updated show_id=%s", show_id)
        result = updated if isinstance(updated, dict) and get_movie_id(updated) else record
        return await self._normalizer.normalize(result)

    async def delete_movie(self, show_id: str) -> None:
        """
        Delete a title.

        Raises:
            AdminRequiredError: If the session lacks the admin role.
            ApiError: If the title does not exist or the API refuses.
        """
        self._require_admin("delete movies")
        await self._api.delete(f"/movietitle/{show_id}", entity_type="movie", entity_id=show_id)
        logger.info("movie_deleted show_id=%s", show_id)

    def _require_admin(self, operation: str) -> None:
        if not self._session.is_admin():
            logger.warning("admin_required operation=%s", operation)
            raise AdminRequiredError(operation)

    def _kids_mode(self, kids_mode: bool | None) -> bool:
        return self._session.kids_mode if kids_mode is None else kids_mode
