"""Shared exceptions for catalog client service operations."""

from shared.api_errors import ErrorCategory, ParsedApiError


class ApiError(Exception):
    """
    Raised when the catalog API rejects a request.

    Carries the parsed category and the API's message so callers can display
    the collaborator's wording unchanged.
    """

    def __init__(self, category: ErrorCategory, message: str, status_code: int) -> None:
        self.category = category
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def from_parsed(cls, info: ParsedApiError) -> "ApiError":
        """Build the most specific ApiError subclass for a parsed error."""
        if info.category == "auth":
            return UnauthorizedError(info.message, info.status_code)
        return cls(info.category, info.message, info.status_code)


class UnauthorizedError(ApiError):
    """Raised on a 401 response (bad credentials or expired session)."""

    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__("auth", message, status_code)


class NotAuthenticatedError(Exception):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "No authenticated user") -> None:
        super().__init__(message)


class AdminRequiredError(Exception):
    """Raised before a catalog mutation when the session lacks the admin role."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Admin role required to {operation}")
