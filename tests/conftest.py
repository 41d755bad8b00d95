"""Pytest fixtures for catalog client tests."""
import time
from collections.abc import AsyncGenerator, Generator
from typing import Any

import jwt
import pytest
import respx

from core.http_client import ApiClient
from core.ratings_cache import RatingsCache
from core.session import MemorySessionStorage, SessionStore, StoredSession
from schemas.user import User
from services.auth_service import AuthService
from services.genre_resolver import GenreResolver
from services.movie_normalizer import MovieNormalizer
from services.movie_service import MovieService
from services.rating_service import RatingService
from services.recommendation_service import RecommendationService

API_URL = "http://catalog.test/api"


def api_url(path: str) -> str:
    """Absolute URL of an API path, for respx routes."""
    return f"{API_URL}{path}"


def make_token(exp_offset: float = 3600, **claims: Any) -> str:
    """Create an HS256 JWT expiring `exp_offset` seconds from now."""
    payload = {"sub": "42", "exp": int(time.time() + exp_offset), **claims}
    return jwt.encode(payload, "test-secret-key-with-enough-length!", algorithm="HS256")


def make_record(show_id: str, **fields: Any) -> dict[str, Any]:
    """Raw catalog record as the API returns it."""
    record = {
        "showId": show_id,
        "type": "Movie",
        "title": f"Title {show_id}",
        "director": "Jane Director",
        "cast": "A. Actor, B. Actor",
        "country": "United States",
        "releaseYear": 2020,
        "rating": "PG-13",
        "duration": "100 min",
        "description": f"Description of {show_id}",
    }
    record.update(fields)
    return record


def make_rating(user_id: int, show_id: str, rating: float, **fields: Any) -> dict[str, Any]:
    """Raw rating record as the API returns it."""
    return {"userId": user_id, "showId": show_id, "rating": rating, **fields}


class ReadOnlyStorage(MemorySessionStorage):
    """Session storage whose writes fail after the first `allowed_saves`."""

    def __init__(self, allowed_saves: int = 0) -> None:
        super().__init__()
        self.allowed_saves = allowed_saves

    def save(self, session: StoredSession) -> None:
        if self.allowed_saves <= 0:
            raise PermissionError("read-only")
        self.allowed_saves -= 1
        super().save(session)

    def clear(self) -> None:
        raise PermissionError("read-only")


@pytest.fixture
def mock_api() -> Generator[respx.MockRouter]:
    """Context manager for mocking API responses."""
    with respx.mock(assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def session() -> SessionStore:
    """Empty in-memory session."""
    return SessionStore()


@pytest.fixture
def regular_user() -> User:
    """A signed-in user without admin rights."""
    return User(id="7", email="viewer@example.com", roles=["User"])


@pytest.fixture
def admin_user() -> User:
    """A signed-in administrator."""
    return User(id="1", email="admin@example.com", roles=["User", "Admin"])


@pytest.fixture
def user_session(session: SessionStore, regular_user: User) -> SessionStore:
    """Session holding a live token for a regular user."""
    session.start(make_token(), regular_user)
    return session


@pytest.fixture
def admin_session(session: SessionStore, admin_user: User) -> SessionStore:
    """Session holding a live token for an administrator."""
    session.start(make_token(), admin_user)
    return session


@pytest.fixture
def ratings_cache() -> RatingsCache:
    """Fresh ratings cache."""
    return RatingsCache()


@pytest.fixture
async def api(session: SessionStore) -> AsyncGenerator[ApiClient]:
    """API client bound to the test session."""
    client = ApiClient(API_URL, session)
    yield client
    await client.aclose()


@pytest.fixture
def rating_service(
    api: ApiClient,
    ratings_cache: RatingsCache,
    session: SessionStore,
) -> RatingService:
    """Rating service over the shared cache."""
    return RatingService(api, ratings_cache, session)


@pytest.fixture
def normalizer(rating_service: RatingService) -> MovieNormalizer:
    """Normalizer with the default genre table."""
    return MovieNormalizer(GenreResolver(), rating_service)


@pytest.fixture
def movie_service(
    api: ApiClient,
    normalizer: MovieNormalizer,
    session: SessionStore,
) -> MovieService:
    """Movie service with the default page size."""
    return MovieService(api, normalizer, session)


@pytest.fixture
def recommendation_service(
    api: ApiClient,
    normalizer: MovieNormalizer,
    session: SessionStore,
) -> RecommendationService:
    """Recommendation service."""
    return RecommendationService(api, normalizer, session)


@pytest.fixture
def auth_service(api: ApiClient, session: SessionStore) -> AuthService:
    """Auth service."""
    return AuthService(api, session)
