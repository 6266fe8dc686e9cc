"""GitHub API error taxonomy."""

from __future__ import annotations

from typing import Optional


class GitHubAPIError(Exception):
    """Base class for every failure raised by GitHubClient."""


class NetworkError(GitHubAPIError):
    """Connection refused, DNS failure or timeout."""


class UnauthorizedError(GitHubAPIError):
    pass


class RateLimitExceededError(GitHubAPIError):
    def __init__(self, message: str = "rate limit exceeded", reset_at: Optional[int] = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at


class NotFoundError(GitHubAPIError):
    pass


class ValidationFailedError(GitHubAPIError):
    """HTTP 422; carries the API's own message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ServerError(GitHubAPIError):
    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code


class DecodingError(GitHubAPIError):
    pass
