"""Projection of raw catalog records into canonical NormalizedMovie objects."""
import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

from schemas.movie import NormalizedMovie
from services.genre_resolver import GenreResolver
from services.rating_service import RatingService

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE_TEMPLATE = "/images/{movie_id}.jpg"
UNKNOWN = "Unknown"
DEFAULT_MEDIA_TYPE = "Movie"

# Characters a browser's encodeURI leaves alone, beyond quote()'s always-safe set
_URI_RESERVED = ";,/?:@&=+$!*'()#"


def encode_image_url(url: str) -> str:
    """Percent-encode a raw image reference so it can be embedded safely (spaces, unicode)."""
    return quote(url, safe=_URI_RESERVED)


def get_movie_id(record: Mapping[str, Any]) -> str:
    """Stable identifier of a raw record, "" when it has none."""
    for key in ("showId", "show_id", "movieId"):
        value = record.get(key)
        if value is not None and value != "":
            return str(value)
    return ""


def resolve_image_url(record: Mapping[str, Any], movie_id: str) -> str:
    """Encoded raw image URL, or the deterministic per-title placeholder path."""
    raw = record.get("imageUrl")
    if isinstance(raw, str) and raw.strip():
        return encode_image_url(raw.strip())
    return PLACEHOLDER_IMAGE_TEMPLATE.format(movie_id=movie_id)


def _text(value: Any, default: str = "") -> str:
    if value is None or value == "":
        return default
    return str(value)


def _year(record: Mapping[str, Any]) -> int | None:
    value = record.get("releaseYear") or record.get("year")
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def project_movie(
    record: Mapping[str, Any],
    genre: str,
    average: float,
) -> NormalizedMovie:
    """
    Build the canonical record from raw fields, a resolved genre and an average rating.

    Missing text fields get placeholders: "Unknown" for director, cast and
    duration, "Movie" for the media type, "" for everything else.
    """
    movie_id = get_movie_id(record)
    return NormalizedMovie(
        movie_id=movie_id,
        title=_text(record.get("title")),
        genre=genre,
        description=_text(record.get("description")),
        image_url=resolve_image_url(record, movie_id),
        year=_year(record),
        director=_text(record.get("director"), UNKNOWN),
        cast=_text(record.get("cast"), UNKNOWN),
        duration=_text(record.get("duration"), UNKNOWN),
        country=_text(record.get("country")),
        content_rating=_text(record.get("rating")),
        media_type=_text(record.get("type"), DEFAULT_MEDIA_TYPE),
        average_rating=average,
    )


class MovieNormalizer:
    """
    Combines genre resolution and rating aggregation into NormalizedMovie records.

    Raises nothing of its own: the aggregator already degrades a ratings
    failure to a zero average.
    """

    def __init__(self, genres: GenreResolver, ratings: RatingService) -> None:
        self._genres = genres
        self._ratings = ratings

    @property
    def genres(self) -> GenreResolver:
        """The genre resolver in use."""
        return self._genres

    async def normalize(self, record: Mapping[str, Any]) -> NormalizedMovie:
        """Normalize one raw record, fetching its ratings."""
        movie_id = get_movie_id(record)
        if movie_id:
            average = (await self._ratings.aggregate(movie_id)).average_rating
        else:
            logger.warning("movie_without_id title=%s", record.get("title"))
            average = 0.0
        return project_movie(record, self._genres.resolve(record), average)

    async def normalize_many(
        self,
        records: Iterable[Mapping[str, Any]],
    ) -> list[NormalizedMovie]:
        """Normalize records concurrently, one ratings fetch per record, preserving order."""
        return list(await asyncio.gather(*(self.normalize(record) for record in records)))
