"""
Composition root for the catalog client.

Builds the session store, ratings cache, HTTP client and services once, and
tears them down together. Use as an async context manager:

    async with CatalogClient.from_settings() as catalog:
        await catalog.auth.login("me@example.com", "secret")
        page = await catalog.movies.get_movies(genre="Action")
"""
import logging

import httpx

from core.config import Settings, get_settings
from core.http_client import ApiClient, UnauthorizedHandler
from core.ratings_cache import RatingsCache
from core.session import FileSessionStorage, MemorySessionStorage, SessionStorage, SessionStore
from services.auth_service import AuthService
from services.genre_resolver import GenreResolver
from services.movie_normalizer import MovieNormalizer
from services.movie_service import MovieService
from services.privacy_service import PrivacyService
from services.rating_service import RatingService
from services.recommendation_service import RecommendationService

logger = logging.getLogger(__name__)


class CatalogClient:
    """All catalog services wired over one session, one cache and one HTTP client."""

    def __init__(
        self,
        settings: Settings,
        storage: SessionStorage | None = None,
        genres: GenreResolver | None = None,
        on_unauthorized: UnauthorizedHandler | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Wire the client.

        Args:
            settings: Client settings.
            storage: Session persistence; defaults to the settings' session file,
                or memory when none is configured.
            genres: Genre resolver; defaults to the API's flag table.
            on_unauthorized: Called with the login path when a 401 ends the session.
            transport: Optional httpx transport (tests, proxies).
        """
        if storage is None:
            storage = (
                FileSessionStorage(settings.session_file)
                if settings.session_file is not None
                else MemorySessionStorage()
            )
        self.settings = settings
        self.session = SessionStore(storage, admin_role=settings.admin_role)
        self.ratings_cache = RatingsCache()
        self.api = ApiClient(
            settings.api_base_url,
            self.session,
            timeout=settings.api_timeout,
            login_path=settings.login_path,
            on_unauthorized=on_unauthorized,
            transport=transport,
        )
        self.ratings = RatingService(self.api, self.ratings_cache, self.session)
        self.normalizer = MovieNormalizer(genres or GenreResolver(), self.ratings)
        self.auth = AuthService(self.api, self.session)
        self.movies = MovieService(
            self.api,
            self.normalizer,
            self.session,
            default_page_size=settings.default_page_size,
        )
        self.recommendations = RecommendationService(self.api, self.normalizer, self.session)
        self.privacy = PrivacyService(self.api)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        on_unauthorized: UnauthorizedHandler | None = None,
    ) -> "CatalogClient":
        """Build a client from environment settings."""
        return cls(settings or get_settings(), on_unauthorized=on_unauthorized)

    async def start(self) -> None:
        """Restore a persisted session, if any."""
        restored = await self.auth.restore()
        logger.info("catalog_client_started session_restored=%s", restored)

    async def close(self) -> None:
        """Close the HTTP client and drop session-scoped caches."""
        await self.api.aclose()
        self.ratings_cache.clear()

    async def __aenter__(self) -> "CatalogClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
