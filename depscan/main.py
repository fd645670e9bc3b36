"""
Main FastAPI application bootstrap.
Configures middleware and includes routers.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from depscan.core.config import config
from depscan.auth.github import router as auth_router
from depscan.auth.session_utils import ABSOLUTE_SESSION_LIFETIME, get_current_session
from depscan.api.dashboard import router as dashboard_router


logger = logging.getLogger(__name__)

# Validate configuration on startup
try:
    config.validate()
except ValueError as error:
    # Fail fast with a clear, non-secret-bearing message
    raise RuntimeError(f"Configuration error: {error}") from error

# Log a safe summary of GitHub OAuth configuration (no secrets)
if config.GITHUB_CLIENT_ID:
    safe_client_id = f"{config.GITHUB_CLIENT_ID[:4]}****"
else:
    safe_client_id = "MISSING"
logger.info(
    "GitHub OAuth enabled for client_id=%s, redirect_uri=%s",
    safe_client_id,
    config.GITHUB_REDIRECT_URI
)


app = FastAPI(
    title="DepScan",
    description="Live, filterable view of a GitHub user's repositories",
)

# Cookie lifetime matches the absolute session lifetime; idle timeout and
# expiry are enforced in session_utils.py
app.add_middleware(
    SessionMiddleware,
    secret_key=config.SESSION_SECRET,
    max_age=int(ABSOLUTE_SESSION_LIFETIME.total_seconds()),
    same_site="lax",
    https_only=config.SESSION_HTTPS_ONLY,
)

app.include_router(auth_router)
app.include_router(dashboard_router)


ENTRY_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>DepScan</title>
</head>
<body>
    <h1>DepScan</h1>
    <p>Scan your GitHub dependencies with one click.</p>
    <a href="/auth/login">Sign in with GitHub</a>
</body>
</html>
"""


@app.get(config.ENTRY_ROUTE, response_class=HTMLResponse, response_model=None)
async def root(request: Request):
    """
    Entry page.

    Signed-in visitors go straight to the dashboard; everyone else gets the
    sign-in page.

    Returns:
        Redirect to the dashboard or the entry HTML page
    """
    if get_current_session(request.session) is not None:
        return RedirectResponse(url=config.DASHBOARD_ROUTE, status_code=302)
    return HTMLResponse(content=ENTRY_PAGE)
