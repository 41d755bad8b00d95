"""Service layer for the privacy policy."""
from core.http_client import ApiClient
from schemas.privacy import PrivacyPolicy


class PrivacyService:
    """Fetches the privacy policy document."""

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def get_privacy_policy(self) -> PrivacyPolicy:
        """
        Fetch the current privacy policy.

        Raises:
            ApiError: If the API cannot serve the policy.
            ValidationError: If the response is not a policy document.
        """
        data = await self._api.get("/privacy")
        return PrivacyPolicy.model_validate(data)
