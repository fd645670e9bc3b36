"""
Token-scoped repository fetcher.
Retrieves the signed-in user's repositories and reports success or failure
without raising, so callers can keep their current list on failure.
"""
from typing import Callable, List, Optional, Tuple
from dataclasses import dataclass
import logging

import httpx

from depscan.domain.repository_models import Repository, InvalidRepositoryPayload
from depscan.services.github_client import GitHubClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one repository fetch."""
    skipped: bool = False
    ok: bool = False
    repositories: Tuple[Repository, ...] = ()
    error: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def failed(self) -> bool:
        return not self.skipped and not self.ok


SKIPPED = FetchOutcome(skipped=True)


def parse_repositories(payload: List[dict]) -> Tuple[Repository, ...]:
    """
    Convert raw GitHub repository payloads into Repository records.

    Malformed entries are skipped with a warning; the order of the remaining
    entries is preserved.
    """
    repositories = []
    for item in payload:
        try:
            repositories.append(Repository.from_api(item))
        except InvalidRepositoryPayload as error:
            logger.warning(f"Skipping malformed repository record: {error}")
    return tuple(repositories)


class TokenScopedRepositoryFetcher:
    """
    Fetches the first page of a user's repositories with a delegated token.

    A missing token skips the call entirely. Non-success responses, network
    faults and unreadable bodies become a failed FetchOutcome; nothing is
    retried.
    """

    def __init__(self, client_factory: Callable[[str], GitHubClient] = GitHubClient):
        """
        Args:
            client_factory: Builds a GitHub client for a token
        """
        self.client_factory = client_factory

    async def fetch(self, access_token: Optional[str]) -> FetchOutcome:
        """
        Fetch repositories, most recently updated first.

        Args:
            access_token: Delegated GitHub token, or None

        Returns:
            FetchOutcome describing the result
        """
        if not access_token:
            logger.debug("No delegated token in session; repository fetch skipped")
            return SKIPPED

        try:
            github_client = self.client_factory(access_token)
            payload = await github_client.get_user_repositories()
        except httpx.HTTPStatusError as error:
            status_code = error.response.status_code
            logger.warning(f"GitHub repository fetch failed with status {status_code}")
            return FetchOutcome(
                error=f"GitHub API error ({status_code})",
                status_code=status_code,
            )
        except httpx.RequestError as error:
            logger.warning(f"Failed to connect to GitHub API: {error}")
            return FetchOutcome(error="Failed to connect to GitHub API")
        except ValueError as error:
            logger.warning(f"Unreadable GitHub repository response: {error}")
            return FetchOutcome(error="Unexpected response from GitHub API")

        repositories = parse_repositories(payload)
        logger.info(f"Fetched {len(repositories)} repositories from GitHub")
        return FetchOutcome(ok=True, repositories=repositories)
