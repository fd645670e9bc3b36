"""
Session utilities for authentication and session management.
Handles session validation, expiry, and cleanup.
"""
from typing import Dict, Any, Optional
import secrets
from datetime import datetime, timedelta, timezone
import logging

from depscan.domain.repository_models import Session

logger = logging.getLogger(__name__)


# Session policy constants
ABSOLUTE_SESSION_LIFETIME = timedelta(hours=8)  # 8 hours absolute maximum
IDLE_TIMEOUT = timedelta(minutes=30)  # 30 minutes of inactivity
SESSION_CREATED_AT_KEY = "session_created_at"
LAST_ACTIVITY_AT_KEY = "last_activity_at"
SUBJECT_ID_KEY = "subject_id"
GITHUB_ACCESS_TOKEN_KEY = "github_access_token"
VIEW_ID_KEY = "view_id"


def _parse_ts(ts: str) -> datetime:
    """
    Parse ISO format timestamp string to a timezone-aware datetime.

    Args:
        ts: ISO format timestamp string

    Returns:
        datetime object (naive values are treated as UTC)
    """
    parsed = datetime.fromisoformat(ts)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_session_valid(session: Dict[str, Any]) -> bool:
    """
    Check if session is valid based on expiry rules.

    Validates:
    - Session exists and identifies a subject
    - Absolute lifetime (8 hours) not exceeded
    - Idle timeout (30 minutes) not exceeded

    The delegated GitHub token is optional: a session without one is still
    authenticated, it just cannot list repositories.

    Args:
        session: Session dictionary from Starlette SessionMiddleware

    Returns:
        True if session is valid, False otherwise
    """
    if not session:
        return False

    if not session.get(SUBJECT_ID_KEY):
        return False

    if SESSION_CREATED_AT_KEY not in session or LAST_ACTIVITY_AT_KEY not in session:
        return False

    now = datetime.now(timezone.utc)

    try:
        created_at = _parse_ts(session[SESSION_CREATED_AT_KEY])
        last_activity = _parse_ts(session[LAST_ACTIVITY_AT_KEY])

        if now - created_at > ABSOLUTE_SESSION_LIFETIME:
            logger.info("Session expired: absolute lifetime exceeded")
            return False

        if now - last_activity > IDLE_TIMEOUT:
            logger.info("Session expired: idle timeout exceeded")
            return False

        return True

    except (ValueError, TypeError, KeyError) as e:
        logger.warning(f"Invalid session timestamp format: {e}")
        return False


def touch_session(session: Dict[str, Any]) -> None:
    """
    Update last_activity_at timestamp to extend idle timeout.

    Does NOT extend absolute session lifetime (sliding expiration only for idle timeout).

    Args:
        session: Session dictionary from Starlette SessionMiddleware (modified in-place)
    """
    if not session:
        return

    now = datetime.now(timezone.utc)
    session[LAST_ACTIVITY_AT_KEY] = now.isoformat()

    if SESSION_CREATED_AT_KEY not in session:
        session[SESSION_CREATED_AT_KEY] = now.isoformat()


def clear_session(session: Dict[str, Any]) -> None:
    """
    Clear all session data.

    Args:
        session: Session dictionary from Starlette SessionMiddleware (modified in-place)
    """
    if not session:
        return

    session.clear()
    logger.info("Session cleared")


def get_current_session(session: Dict[str, Any]) -> Optional[Session]:
    """
    Resolve the signed-in subject from the cookie session.

    Validates the session and touches it if valid. An expired session is
    reported as absent, never as an error.

    Args:
        session: Session dictionary from Starlette SessionMiddleware

    Returns:
        Session for the subject, or None if there is no valid session
    """
    if not is_session_valid(session):
        return None

    # Touch session to extend idle timeout (sliding expiration)
    touch_session(session)

    # Sessions started before view ids existed get one on first use
    if not session.get(VIEW_ID_KEY):
        session[VIEW_ID_KEY] = secrets.token_urlsafe(16)

    return Session(
        subject_id=str(session[SUBJECT_ID_KEY]),
        access_token=session.get(GITHUB_ACCESS_TOKEN_KEY) or None,
        session_id=session[VIEW_ID_KEY],
    )


def initialize_session(
    session: Dict[str, Any],
    subject_id: str,
    access_token: Optional[str] = None
) -> None:
    """
    Initialize session with subject, optional access token and timestamps.

    Args:
        session: Session dictionary from Starlette SessionMiddleware (modified in-place)
        subject_id: Identifier of the signed-in subject
        access_token: Delegated GitHub OAuth access token, if one was issued
    """
    now = datetime.now(timezone.utc)
    session[SUBJECT_ID_KEY] = subject_id
    session[VIEW_ID_KEY] = secrets.token_urlsafe(16)
    if access_token:
        session[GITHUB_ACCESS_TOKEN_KEY] = access_token
    else:
        session.pop(GITHUB_ACCESS_TOKEN_KEY, None)
    session[SESSION_CREATED_AT_KEY] = now.isoformat()
    session[LAST_ACTIVITY_AT_KEY] = now.isoformat()
