"""
Configuration module for loading environment variables.
OAuth secrets, session settings and GitHub API settings come from the environment.
"""
import os


class Config:
    """Application configuration loaded from environment variables."""

    # GitHub OAuth Configuration
    GITHUB_CLIENT_ID: str = os.getenv("GITHUB_CLIENT_ID", "")
    GITHUB_CLIENT_SECRET: str = os.getenv("GITHUB_CLIENT_SECRET", "")
    GITHUB_REDIRECT_URI: str = os.getenv(
        "GITHUB_REDIRECT_URI",
        "http://localhost:8000/auth/callback"
    ).rstrip("/")  # Normalize: remove trailing slash for exact GitHub match
    GITHUB_OAUTH_SCOPE: str = os.getenv("GITHUB_OAUTH_SCOPE", "repo")

    # Session Configuration
    SESSION_SECRET: str = os.getenv("SESSION_SECRET", "super-secret-string")
    SESSION_HTTPS_ONLY: bool = os.getenv("SESSION_HTTPS_ONLY", "false").lower() == "true"

    # GitHub API URLs
    GITHUB_AUTH_URL: str = "https://github.com/login/oauth/authorize"
    GITHUB_TOKEN_URL: str = "https://github.com/login/oauth/access_token"
    GITHUB_API_BASE_URL: str = os.getenv("GITHUB_API_BASE_URL", "https://api.github.com").rstrip("/")
    GITHUB_API_VERSION: str = os.getenv("GITHUB_API_VERSION", "2022-11-28")
    GITHUB_TIMEOUT: float = float(os.getenv("GITHUB_TIMEOUT", "30"))

    # Repository listing: first page only, most recently updated first
    REPOSITORIES_PER_PAGE: int = 100
    REPOSITORIES_SORT: str = "updated"

    # Redirect targets
    ENTRY_ROUTE: str = "/"
    DASHBOARD_ROUTE: str = "/dashboard"

    @classmethod
    def validate(cls) -> None:
        """
        Validates that required configuration values are set.

        Raises:
            ValueError: If any required configuration is missing or invalid.
        """
        if not cls.GITHUB_CLIENT_ID:
            raise ValueError("GITHUB_CLIENT_ID is required")
        if not cls.GITHUB_CLIENT_SECRET:
            raise ValueError("GITHUB_CLIENT_SECRET is required")

        # Validate redirect_uri format
        if not cls.GITHUB_REDIRECT_URI:
            raise ValueError("GITHUB_REDIRECT_URI is required")
        if not cls.GITHUB_REDIRECT_URI.startswith(("http://", "https://")):
            raise ValueError(
                f"GITHUB_REDIRECT_URI must be a valid URL (got: {cls.GITHUB_REDIRECT_URI})"
            )

        if not cls.GITHUB_API_BASE_URL.startswith(("http://", "https://")):
            raise ValueError(
                f"GITHUB_API_BASE_URL must be a valid URL (got: {cls.GITHUB_API_BASE_URL})"
            )
        if cls.GITHUB_TIMEOUT <= 0:
            raise ValueError("GITHUB_TIMEOUT must be positive")


config = Config()
