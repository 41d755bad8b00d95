"""Pydantic schemas for users, sessions and auth endpoints."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def _number_to_str(value: Any) -> Any:
    """Accept numeric identifiers from the API and keep them as strings."""
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return value


class User(BaseModel):
    """
    The signed-in user as carried by the session.

    Base fields (id, email, roles) come from the login response; name, age and
    kids_mode_enforced are filled in later by the user-info enrichment call.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    email: str = ""
    roles: list[str] = []
    name: str | None = None
    age: str | None = None
    kids_mode_enforced: bool = False

    @field_validator("id", "age", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Any:
        """User ids and ages arrive as numbers or strings depending on the endpoint."""
        return _number_to_str(v)

    @field_validator("roles", mode="before")
    @classmethod
    def default_roles(cls, v: Any) -> Any:
        """A null roles claim means no roles."""
        return [] if v is None else v

    def has_role(self, role: str) -> bool:
        """Check role membership."""
        return role in self.roles


class AuthResponse(BaseModel):
    """Response of login and register. Register may omit both (no auto-login)."""

    model_config = ConfigDict(extra="ignore")

    token: str | None = None
    user: User | None = None


class LoginRequest(BaseModel):
    """Schema for POST /auth/login."""

    email: str
    password: str


class RegisterRequest(BaseModel):
    """
    Schema for POST /auth/register.

    Password confirmation is checked by the API, which returns its own message.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: str
    password: str
    confirm_password: str
    full_name: str | None = None
    phone: str | None = None
    username: str | None = None
    age: str | None = None
    gender: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    services: list[str] | None = None

    @field_validator("age", mode="before")
    @classmethod
    def coerce_age(cls, v: Any) -> Any:
        """Age is sent as a string."""
        return _number_to_str(v)


class UserInfo(BaseModel):
    """
    Extended profile returned by GET /auth/user-info and PUT /auth/update.

    Unknown keys are kept so profile editors can round-trip fields this client
    does not model.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    email: str | None = None
    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    username: str | None = None
    age: str | None = None
    gender: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    services: list[str] | None = None
    enforce_kids_mode: bool | None = None

    @field_validator("age", mode="before")
    @classmethod
    def coerce_age(cls, v: Any) -> Any:
        """Age is returned as a number by some API versions."""
        return _number_to_str(v)

    @property
    def display_name(self) -> str | None:
        """Full name, falling back to first/last name parts."""
        if self.name:
            return self.name
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else None


class UserUpdate(BaseModel):
    """Schema for PUT /auth/update. Only set fields are sent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    username: str | None = None
    age: str | None = None
    gender: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    services: list[str] | None = None

    @field_validator("age", mode="before")
    @classmethod
    def coerce_age(cls, v: Any) -> Any:
        """Age is sent as a string."""
        return _number_to_str(v)


class ChangePasswordRequest(BaseModel):
    """Schema for POST /auth/change-password."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=1)
    confirm_password: str

    @model_validator(mode="after")
    def validate_passwords_match(self) -> "ChangePasswordRequest":
        """Reject mismatched confirmation before anything is sent."""
        if self.new_password != self.confirm_password:
            raise ValueError("New passwords do not match")
        return self
