"""Pydantic schemas for the privacy policy endpoint."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PrivacySection(BaseModel):
    """One titled section of the policy."""

    title: str
    content: str


class PrivacyPolicy(BaseModel):
    """Schema for GET /privacy."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    last_updated: str
    sections: list[PrivacySection] = []
