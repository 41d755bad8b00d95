"""Pydantic schemas for catalog titles."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Raw catalog records are plain dicts with these keys (plus ~30 genre flags).
RawCatalogRecord = dict[str, Any]


class NormalizedMovie(BaseModel):
    """
    Canonical, display-ready projection of a catalog record.

    Text fields are never None; views render every field unconditionally.
    Recomputed on every fetch and never sent back to the API.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    movie_id: str
    title: str = ""
    genre: str = "Other"
    description: str = ""
    image_url: str
    year: int | None = None
    director: str = "Unknown"
    cast: str = "Unknown"
    duration: str = "Unknown"
    country: str = ""
    content_rating: str = ""
    media_type: str = "Movie"
    average_rating: float = 0.0


class MoviePage(BaseModel):
    """One page of normalized titles with the API's paging metadata."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    movies: list[NormalizedMovie] = []
    total_count: int = 0
    total_pages: int = 0
    current_page: int = 1
    page_size: int = 0


class MovieCreate(BaseModel):
    """
    Admin input for creating a title.

    `genre` is a display label (e.g. "Action"); it is mapped back to the
    matching category flag when the catalog record is built.
    """

    movie_id: str | None = None
    title: str = Field(min_length=1)
    genre: str | None = None
    description: str = ""
    year: int | None = None
    director: str = ""
    cast: str = ""
    duration: str = ""
    country: str = ""
    content_rating: str = ""
    media_type: str = "Movie"
    image_url: str | None = None

    @field_validator("movie_id", mode="before")
    @classmethod
    def coerce_movie_id(cls, v: Any) -> Any:
        """Ids may be typed as numbers in admin forms."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class MovieUpdate(BaseModel):
    """Admin input for updating a title. Unset (None or empty) fields keep their current value."""

    title: str | None = None
    genre: str | None = None
    description: str | None = None
    year: int | None = None
    director: str | None = None
    cast: str | None = None
    duration: str | None = None
    country: str | None = None
    content_rating: str | None = None
    media_type: str | None = None
    image_url: str | None = None
