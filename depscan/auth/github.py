"""
GitHub OAuth authentication routes.
Handles login, callback, logout, and session management.
"""
import secrets
import logging
from urllib.parse import urlencode
from typing import Optional

from fastapi import APIRouter, Request, HTTPException, Query
from fastapi.responses import RedirectResponse
import httpx

from depscan.core.config import config
from depscan.domain.repository_models import Profile, InvalidProfileRecord
from depscan.services.github_client import GitHubClient
from depscan.services.profile_store import get_profile_store
from depscan.services.dashboard_controller import get_dashboard_controller
from depscan.auth.session_utils import (
    VIEW_ID_KEY,
    initialize_session,
    clear_session,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def generate_oauth_state() -> str:
    """
    Generate a secure random state string for OAuth flow.
    Used to prevent CSRF attacks.

    Returns:
        Random state string
    """
    return secrets.token_urlsafe(32)


@router.get("/auth/login")
async def github_login(request: Request) -> RedirectResponse:
    """
    Initiate GitHub OAuth login flow.
    Generates a secure state token and redirects to GitHub authorization page.

    Returns:
        Redirect response to GitHub OAuth authorization page
    """
    state = generate_oauth_state()
    request.session["oauth_state"] = state

    params = {
        "client_id": config.GITHUB_CLIENT_ID,
        "redirect_uri": config.GITHUB_REDIRECT_URI,
        "scope": config.GITHUB_OAUTH_SCOPE,  # "repo" includes private repositories
        "state": state,
    }
    auth_url = f"{config.GITHUB_AUTH_URL}?{urlencode(params)}"
    return RedirectResponse(url=auth_url)


@router.get("/auth/callback")
async def github_callback(
    request: Request,
    code: str = Query(..., description="OAuth authorization code"),
    state: Optional[str] = Query(None, description="OAuth state parameter"),
) -> RedirectResponse:
    """
    Handle GitHub OAuth callback.
    Validates state parameter, exchanges code for access token, records the
    user's profile and starts the session.

    Args:
        request: FastAPI request object
        code: OAuth authorization code from GitHub
        state: OAuth state parameter from GitHub (must match session state)

    Returns:
        Redirect response to the dashboard

    Raises:
        HTTPException: If state validation fails or token exchange fails
    """
    # Validate state parameter to prevent CSRF attacks
    session_state = request.session.get("oauth_state")
    if not session_state or session_state != state:
        raise HTTPException(
            status_code=400,
            detail="Invalid or missing OAuth state parameter"
        )

    request.session.pop("oauth_state", None)

    try:
        access_token = await GitHubClient.exchange_code_for_token(code)
        user = await GitHubClient(access_token).get_authenticated_user()
    except httpx.HTTPStatusError as error:
        error_text = error.response.text or ""
        if "redirect_uri" in error_text.lower() or error.response.status_code == 400:
            raise HTTPException(
                status_code=400,
                detail=(
                    f"OAuth configuration error: The redirect URI '{config.GITHUB_REDIRECT_URI}' "
                    "is not registered in your GitHub OAuth app. "
                    "Please add this exact URL to your GitHub OAuth app's authorized redirect URIs."
                )
            )
        raise HTTPException(
            status_code=error.response.status_code,
            detail=f"Failed to complete GitHub sign-in (status {error.response.status_code})"
        )
    except httpx.RequestError as error:
        raise HTTPException(
            status_code=503,
            detail=f"Failed to connect to GitHub: {str(error)}"
        )
    except ValueError as error:
        raise HTTPException(
            status_code=400,
            detail=str(error)
        )

    subject_id = str(user["id"])

    try:
        profile = Profile.from_github_user(subject_id, user)
        get_profile_store().upsert(profile.to_dict())
    except InvalidProfileRecord as error:
        # Sign-in still succeeds; the dashboard shows placeholder values
        logger.warning(f"GitHub user {subject_id} has no usable profile: {error}")

    initialize_session(request.session, subject_id, access_token)
    logger.info(f"Signed in GitHub user {subject_id}")

    return RedirectResponse(url=config.DASHBOARD_ROUTE, status_code=302)


@router.post("/auth/logout")
async def logout(request: Request) -> RedirectResponse:
    """
    Logout endpoint.

    Clears session data and this session's dashboard state, then returns the
    visitor to the entry page.

    Returns:
        Redirect response to the entry route
    """
    view_id = request.session.get(VIEW_ID_KEY)
    if view_id:
        get_dashboard_controller().discard(str(view_id))
    clear_session(request.session)
    return RedirectResponse(url=config.ENTRY_ROUTE, status_code=303)
