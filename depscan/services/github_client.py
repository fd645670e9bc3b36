"""
GitHub API client service.
Handles all interactions with GitHub's API.
"""
from typing import List, Dict, Any, Optional
import httpx

from depscan.core.config import config


class GitHubClient:
    """Service for making GitHub API calls on behalf of a signed-in user."""

    def __init__(
        self,
        access_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize GitHub client with a delegated access token.

        Args:
            access_token: GitHub OAuth access token
            transport: Optional httpx transport (used to stub GitHub in tests)
        """
        self.access_token = access_token
        self.base_url = config.GITHUB_API_BASE_URL
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": config.GITHUB_API_VERSION,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=config.GITHUB_TIMEOUT)

    async def get_user_repositories(
        self,
        per_page: int = config.REPOSITORIES_PER_PAGE,
        sort: str = config.REPOSITORIES_SORT,
        direction: str = "desc"
    ) -> List[Dict[str, Any]]:
        """
        Fetch the first page of the user's repositories from GitHub API.

        Args:
            per_page: Number of repositories per page (GitHub caps this at 100)
            sort: Sort key (GitHub accepts created, updated, pushed, full_name)
            direction: Sort direction

        Returns:
            List of raw repository dictionaries

        Raises:
            httpx.HTTPStatusError: If GitHub API request fails
            httpx.RequestError: If GitHub cannot be reached
            ValueError: If the response body is not a JSON array
        """
        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/user/repos",
                headers=self.headers,
                params={
                    "per_page": per_page,
                    "sort": sort,
                    "direction": direction,
                },
            )
            response.raise_for_status()
            payload = response.json()

        if not isinstance(payload, list):
            raise ValueError("Unexpected GitHub response: repository list expected")
        return payload

    async def get_authenticated_user(self) -> Dict[str, Any]:
        """
        Fetch the authenticated user's account details.

        Returns:
            GitHub user dictionary (id, login, name, avatar_url, ...)

        Raises:
            httpx.HTTPStatusError: If GitHub API request fails
            ValueError: If the response does not identify a user
        """
        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/user",
                headers=self.headers,
            )
            response.raise_for_status()
            user = response.json()

        if not isinstance(user, dict) or user.get("id") is None:
            raise ValueError("GitHub user response is missing an id")
        return user

    @classmethod
    async def exchange_code_for_token(
        cls,
        code: str,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> str:
        """
        Exchange OAuth authorization code for access token.
        Class method since token is not yet available.

        Args:
            code: OAuth authorization code from GitHub callback
            transport: Optional httpx transport

        Returns:
            Access token string

        Raises:
            httpx.HTTPStatusError: If token exchange fails
            ValueError: If access token is not present in response
        """
        async with httpx.AsyncClient(transport=transport, timeout=config.GITHUB_TIMEOUT) as client:
            response = await client.post(
                config.GITHUB_TOKEN_URL,
                data={
                    "client_id": config.GITHUB_CLIENT_ID,
                    "client_secret": config.GITHUB_CLIENT_SECRET,
                    "code": code,
                    "redirect_uri": config.GITHUB_REDIRECT_URI,
                },
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            token_data = response.json()
            access_token = token_data.get("access_token")

            if not access_token:
                raise ValueError("Access token not found in GitHub response")

            return access_token
