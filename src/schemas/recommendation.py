"""Pydantic schemas for recommendation collections."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from schemas.movie import NormalizedMovie

# Wire key -> attribute name of each per-user collection
USER_RECOMMENDATION_COLLECTIONS = {
    "locationRecommendations": "location_recommendations",
    "basicRecommendations": "basic_recommendations",
    "streamingRecommendations": "streaming_recommendations",
}


class UserRecommendations(BaseModel):
    """
    The three labeled per-user collections.

    Each collection is independent: one missing or broken collection leaves
    the others untouched.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    location_recommendations: list[NormalizedMovie] = []
    basic_recommendations: list[NormalizedMovie] = []
    streaming_recommendations: list[NormalizedMovie] = []

    def is_empty(self) -> bool:
        """True when no collection has entries."""
        return not (
            self.location_recommendations
            or self.basic_recommendations
            or self.streaming_recommendations
        )
