#!/usr/bin/env python3
"""
GitHub REST API Client
Search, trending, users, repositories, avatar downloads

Implements:
- search_repositories(query, page, per_page) -> dict
- trending_repositories(language, since, page, per_page) -> dict
- get_user(login) -> dict
- get_repository(owner, repo) -> dict
- download(url) -> bytes
"""

import logging
import os
from datetime import date, timedelta
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import requests

from .errors import (
    DecodingError,
    GitHubAPIError,
    NetworkError,
    NotFoundError,
    RateLimitExceededError,
    ServerError,
    UnauthorizedError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

RATE_LIMIT_REMAINING = "X-RateLimit-Remaining"
RATE_LIMIT_RESET = "X-RateLimit-Reset"

TRENDING_WINDOWS = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
}


class GitHubClient:
    """
    Thin GitHub REST client.

    Design principles:
    - Token from GITHUB_TOKEN only when not passed explicitly
    - Every non-2xx status maps to a typed GitHubAPIError
    - Timeout defaults prevent hanging on an unresponsive network
    - Caching is the caller's job (see viewer.fetcher)
    """

    DEFAULT_BASE_URL = "https://api.github.com"
    DEFAULT_TIMEOUT = 30  # seconds
    USER_AGENT = "Github-Viewer/1.0"
    SEARCH_REPOSITORIES_ENDPOINT = "/search/repositories"

    def __init__(self, base_url: str = None, token: str = None, timeout: int = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize GitHub client.

        Args:
            base_url: API base URL (or GITHUB_API_URL env var)
            token: Personal access token (or GITHUB_TOKEN env var)
            timeout: Request timeout in seconds
            session: Pre-built requests session (tests, connection reuse)
        """
        self.base_url = (base_url or os.environ.get("GITHUB_API_URL", self.DEFAULT_BASE_URL)).rstrip("/")
        self.token = token or os.environ.get("GITHUB_TOKEN")
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.session = session or requests.Session()

        self._request_count = 0
        self._error_count = 0

        logger.info(
            f"GitHubClient initialized (base_url={self.base_url}, "
            f"token={'configured' if self.token else 'anonymous'})"
        )

    def _headers(self, authenticated: bool = True) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": self.USER_AGENT,
        }
        if self.token and authenticated:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _send(self, method: str, url: str, authenticated: bool = True, **kwargs) -> requests.Response:
        self._request_count += 1
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(authenticated),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.Timeout as e:
            self._error_count += 1
            logger.error(f"GitHub API timeout: {method} {url} (>{self.timeout}s)")
            raise NetworkError(f"timeout after {self.timeout}s") from e
        except requests.ConnectionError as e:
            self._error_count += 1
            logger.error(f"GitHub API connection error: {method} {url}")
            raise NetworkError("connection failed") from e

        if response.status_code >= 400:
            self._error_count += 1
            logger.warning(f"GitHub API error: {method} {url} -> {response.status_code}")
            raise self._error_for(response)
        return response

    def _error_for(self, response: requests.Response) -> GitHubAPIError:
        status = response.status_code
        if status == 401:
            return UnauthorizedError("bad or expired token")
        if status == 403:
            if response.headers.get(RATE_LIMIT_REMAINING) == "0":
                reset = response.headers.get(RATE_LIMIT_RESET)
                return RateLimitExceededError(reset_at=int(reset) if reset and reset.isdigit() else None)
            return UnauthorizedError("forbidden")
        if status == 404:
            return NotFoundError(response.url or "not found")
        if status == 422:
            try:
                message = response.json().get("message", "validation failed")
            except ValueError:
                return ServerError(status)
            return ValidationFailedError(message)
        return ServerError(status)

    def _get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self._send("GET", f"{self.base_url}{endpoint}", params=params)
        try:
            return response.json()
        except ValueError as e:
            self._error_count += 1
            raise DecodingError(f"invalid JSON from {endpoint}") from e

    def search_repositories(self, query: str, page: int = 1, per_page: int = 30,
                            sort: str = "stars", order: str = "desc") -> Dict[str, Any]:
        """Search repositories. Returns the raw search response (total_count, items)."""
        return self._get_json(
            self.SEARCH_REPOSITORIES_ENDPOINT,
            params={"q": query, "page": page, "per_page": per_page, "sort": sort, "order": order},
        )

    def trending_repositories(self, language: str = None, since: str = "daily", page: int = 1,
                              per_page: int = 30, today: Optional[date] = None) -> Dict[str, Any]:
        """Most-starred repositories created within the trending window."""
        return self.search_repositories(
            trending_query(language, since, today), page=page, per_page=per_page,
        )

    def get_user(self, login: str) -> Dict[str, Any]:
        return self._get_json(f"/users/{login}")

    def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        return self._get_json(f"/repos/{owner}/{repo}")

    def download(self, url: str) -> bytes:
        """
        Fetch raw bytes (avatars). Absolute URL, not relative to base_url.

        The token is only sent when the URL points at the API host itself;
        avatar CDNs and any other host get an anonymous request.
        """
        response = self._send("GET", url, authenticated=self._is_api_host(url))
        return response.content

    def _is_api_host(self, url: str) -> bool:
        target = urlsplit(url)
        api = urlsplit(self.base_url)
        return (target.scheme, target.netloc.lower()) == (api.scheme, api.netloc.lower())

    def get_stats(self) -> Dict[str, int]:
        return {"requests": self._request_count, "errors": self._error_count}

    def close(self) -> None:
        self.session.close()


def trending_query(language: Optional[str] = None, since: str = "daily",
                   today: Optional[date] = None) -> str:
    """Build the search query behind "trending": stars:>1 [language:X] created:>DATE."""
    today = today or date.today()
    days = TRENDING_WINDOWS.get(since, 1)
    query = "stars:>1"
    if language:
        query += f" language:{language}"
    query += f" created:>{(today - timedelta(days=days)).isoformat()}"
    return query
