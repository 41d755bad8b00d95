"""Pydantic schemas for movie ratings."""
from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RatingRecord(BaseModel):
    """
    A single user's rating of a title, as returned by the API.

    Scores are not range-checked on read; averaging works over whatever the
    API returns, duplicates included.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    rating_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("ratingId", "id", "rating_id"),
    )
    user_id: int
    show_id: str
    rating: float
    review: str | None = None
    user_name: str | None = None
    created_at: datetime | None = None


class RatingCreate(BaseModel):
    """Schema for POST /movierating. Repeat submissions are treated as updates by the API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    show_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    review: str | None = None


class RatingSummary(BaseModel):
    """Aggregated ratings of one title."""

    average_rating: float = 0.0
    ratings: list[RatingRecord] = []

    @property
    def count(self) -> int:
        """Number of ratings the average was computed over."""
        return len(self.ratings)
