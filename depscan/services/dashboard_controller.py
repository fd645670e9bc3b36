"""
Dashboard controller.

Owns one ViewState per browser session and is the only writer of it:
repository lists arrive through the fetcher, search and language filters
through explicit setters.
"""
import asyncio
import logging
import time
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, Optional

from depscan.auth.session_utils import IDLE_TIMEOUT
from depscan.domain.repository_models import Profile, Session
from depscan.domain.view_models import (
    ALL_LANGUAGES,
    NOTIFICATION_ERROR,
    NOTIFICATION_SUCCESS,
    Notification,
    ViewState,
)
from depscan.services.profile_store import ProfileStore, get_profile_store, resolve_profile
from depscan.services.repository_fetcher import FetchOutcome, TokenScopedRepositoryFetcher
from depscan.services.view_engine import build_view

logger = logging.getLogger(__name__)


REFRESH_SUCCESS_MESSAGE = "Repositories refreshed"
REFRESH_FAILURE_MESSAGE = "Could not load repositories from GitHub"
UNEXPECTED_FETCH_ERROR = "Unexpected error while loading repositories"

# A state untouched for longer than the session idle timeout belongs to an
# expired session
STATE_IDLE_SECONDS = IDLE_TIMEOUT.total_seconds()
MAX_VIEW_STATES = 1000


class DashboardController:
    """
    Sequences profile resolution and repository fetches for the dashboard.

    States are keyed by the session's view key, so two browser sessions of
    the same user never share filters. Idle states are evicted and the
    registry is capped, least recently used first.

    Every fetch is tagged with the next value of the state's request_sequence.
    Only the response carrying the latest sequence is applied, so a slow
    earlier request can never overwrite a newer result.
    """

    def __init__(
        self,
        profile_store: Optional[ProfileStore] = None,
        fetcher: Optional[TokenScopedRepositoryFetcher] = None,
        idle_seconds: float = STATE_IDLE_SECONDS,
        max_states: int = MAX_VIEW_STATES
    ):
        """
        Args:
            profile_store: Store used to resolve profiles (defaults to the global store)
            fetcher: Repository fetcher (defaults to one backed by GitHubClient)
            idle_seconds: Seconds after which an untouched state is evicted
            max_states: Maximum number of states kept at once
        """
        self.profile_store = profile_store or get_profile_store()
        self.fetcher = fetcher or TokenScopedRepositoryFetcher()
        self.idle_seconds = idle_seconds
        self.max_states = max_states
        self._states: "OrderedDict[str, ViewState]" = OrderedDict()
        self._last_seen: Dict[str, float] = {}

    def get_state(self, view_key: str) -> ViewState:
        """Current state for a session, created empty on first use."""
        state = self._states.get(view_key)
        if state is None:
            state = ViewState()
            self._states[view_key] = state
        self._mark_used(view_key)
        return state

    def discard(self, view_key: str) -> None:
        """Forget a session's state (sign-out or expiry)."""
        self._states.pop(view_key, None)
        self._last_seen.pop(view_key, None)

    def _mark_used(self, view_key: str) -> None:
        self._states.move_to_end(view_key)
        self._last_seen[view_key] = time.monotonic()
        self._evict()

    def _evict(self) -> None:
        cutoff = time.monotonic() - self.idle_seconds
        expired = [key for key, seen in self._last_seen.items() if seen < cutoff]
        for key in expired:
            self.discard(key)

        while len(self._states) > self.max_states:
            oldest, _ = self._states.popitem(last=False)
            self._last_seen.pop(oldest, None)

        if expired:
            logger.debug(f"Evicted {len(expired)} idle dashboard states")

    async def activate(self, session: Session) -> ViewState:
        """
        Page activation for an authenticated session.

        Starts from a fresh state, then resolves the profile and loads the
        repositories concurrently. The initial load only notifies on failure.

        Args:
            session: Session already confirmed by the session gate

        Returns:
            The session's new ViewState
        """
        state = ViewState()
        self._states[session.view_key] = state
        self._mark_used(session.view_key)

        profile, _ = await asyncio.gather(
            self._resolve_profile(session.subject_id),
            self._load_repositories(state, session.access_token, is_refresh=False),
        )
        state.profile = profile
        return state

    async def refresh(self, session: Session) -> FetchOutcome:
        """
        User-triggered refresh using the session's current token.

        Overlapping refreshes are not rejected; the newest one wins.
        """
        state = self.get_state(session.view_key)
        return await self._load_repositories(state, session.access_token, is_refresh=True)

    def set_search_text(self, view_key: str, search_text: str) -> ViewState:
        state = self.get_state(view_key)
        state.search_text = search_text or ""
        return state

    def set_selected_language(self, view_key: str, language: Optional[str]) -> ViewState:
        state = self.get_state(view_key)
        state.selected_language = language or ALL_LANGUAGES
        return state

    def render(self, view_key: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Derived dashboard view for a session.

        Pending notifications are included once and then dropped.
        """
        state = self.get_state(view_key)
        view = build_view(state, now)
        view["notifications"] = [n.to_dict() for n in state.drain_notifications()]
        return view

    async def _resolve_profile(self, subject_id: str) -> Optional[Profile]:
        return resolve_profile(self.profile_store, subject_id)

    async def _load_repositories(
        self,
        state: ViewState,
        access_token: Optional[str],
        is_refresh: bool
    ) -> FetchOutcome:
        if not access_token:
            logger.info("Session has no delegated GitHub token; repositories not loaded")
            return await self.fetcher.fetch(None)

        state.request_sequence += 1
        sequence = state.request_sequence
        state.is_refreshing = True

        try:
            outcome = await self.fetcher.fetch(access_token)
        except Exception as error:
            logger.error(f"Repository fetch failed unexpectedly: {error}", exc_info=True)
            outcome = FetchOutcome(error=UNEXPECTED_FETCH_ERROR)
        finally:
            if sequence == state.request_sequence:
                state.is_refreshing = False

        if sequence != state.request_sequence:
            logger.debug(
                f"Discarding repository response #{sequence}; "
                f"request #{state.request_sequence} is newer"
            )
            return outcome

        if outcome.ok:
            state.raw_repositories = outcome.repositories
            if is_refresh:
                state.notifications.append(
                    Notification(level=NOTIFICATION_SUCCESS, message=REFRESH_SUCCESS_MESSAGE)
                )
                logger.info(f"Repository refresh applied ({len(outcome.repositories)} repositories)")
        elif outcome.failed:
            # Previous list is kept as-is
            message = REFRESH_FAILURE_MESSAGE
            if outcome.error:
                message = f"{REFRESH_FAILURE_MESSAGE}: {outcome.error}"
            state.notifications.append(Notification(level=NOTIFICATION_ERROR, message=message))

        return outcome


# Global singleton instance
_dashboard_controller: Optional[DashboardController] = None


def get_dashboard_controller() -> DashboardController:
    """
    Get the global dashboard controller instance.

    Returns:
        DashboardController instance
    """
    global _dashboard_controller
    if _dashboard_controller is None:
        _dashboard_controller = DashboardController()
    return _dashboard_controller
