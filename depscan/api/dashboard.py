"""
API routes for the repository dashboard.
Requires GitHub OAuth authentication.
"""
from typing import Dict, Any, Optional, Union

from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from depscan.core.config import config
from depscan.domain.repository_models import Session
from depscan.services.dashboard_controller import get_dashboard_controller
from depscan.auth.session_utils import VIEW_ID_KEY, clear_session, get_current_session


router = APIRouter()


def current_session(request: Request) -> Optional[Session]:
    """
    Resolve the current session, dropping dashboard state left by an expired one.

    Args:
        request: FastAPI request object

    Returns:
        Session for the signed-in subject, or None
    """
    session = get_current_session(request.session)
    if session is None and request.session.get(VIEW_ID_KEY):
        get_dashboard_controller().discard(str(request.session[VIEW_ID_KEY]))
        clear_session(request.session)
    return session


class DashboardFilters(BaseModel):
    """Request model for updating search text and language filter."""
    search_text: Optional[str] = Field(None, description="Case-insensitive name/description search")
    selected_language: Optional[str] = Field(None, description='Language to show, or "all"')


def require_session(request: Request) -> Session:
    """
    Resolve the current session for JSON endpoints.

    Validates session expiry and extends idle timeout if valid.

    Args:
        request: FastAPI request object

    Returns:
        Session for the signed-in subject

    Raises:
        HTTPException: If session is missing or expired
    """
    session = current_session(request)
    if session is None:
        raise HTTPException(
            status_code=401,
            detail="Session expired. Please sign in again."
        )
    return session


@router.get(config.DASHBOARD_ROUTE, response_model=None)
async def open_dashboard(request: Request) -> Union[RedirectResponse, Dict[str, Any]]:
    """
    Dashboard page activation.

    Visitors without a valid session are sent back to the entry page and
    nothing is fetched. Otherwise the profile and repositories are loaded.

    Returns:
        Dashboard view, or a redirect to the entry route
    """
    session = current_session(request)
    if session is None:
        return RedirectResponse(url=config.ENTRY_ROUTE, status_code=302)

    controller = get_dashboard_controller()
    await controller.activate(session)
    return controller.render(session.view_key)


@router.get("/api/dashboard")
async def get_dashboard(request: Request) -> Dict[str, Any]:
    """
    Current dashboard view without fetching anything.

    Returns:
        Dashboard view
    """
    session = require_session(request)
    return get_dashboard_controller().render(session.view_key)


@router.put("/api/dashboard/filters")
async def update_filters(filters: DashboardFilters, request: Request) -> Dict[str, Any]:
    """
    Update search text and/or language filter.

    Fields left out of the body keep their current value.

    Returns:
        Dashboard view recomputed for the new filters
    """
    session = require_session(request)
    controller = get_dashboard_controller()

    if filters.search_text is not None:
        controller.set_search_text(session.view_key, filters.search_text)
    if filters.selected_language is not None:
        controller.set_selected_language(session.view_key, filters.selected_language)

    return controller.render(session.view_key)


@router.post("/api/dashboard/refresh")
async def refresh_dashboard(request: Request) -> Dict[str, Any]:
    """
    Re-fetch repositories with the session's current token.

    Fetch failures do not change the status code: the previous list is kept
    and the failure is reported in the view's notifications.

    Returns:
        Dashboard view including refresh notifications
    """
    session = require_session(request)
    controller = get_dashboard_controller()
    await controller.refresh(session)
    return controller.render(session.view_key)
