"""
Domain models for the dashboard view state.
Only inputs live here; filtered lists and language sets are derived on demand.
"""
from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field

from depscan.domain.repository_models import Profile, Repository


ALL_LANGUAGES = "all"

NOTIFICATION_SUCCESS = "success"
NOTIFICATION_ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """Transient user-visible message, shown once."""
    level: str  # "success" | "error"
    message: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"level": self.level, "message": self.message}


@dataclass
class ViewState:
    """
    Dashboard state for one signed-in subject.

    raw_repositories is replaced wholesale by the fetcher and never mutated
    in place. request_sequence tags every repository fetch so that a
    superseded response can be recognised and dropped.
    """
    search_text: str = ""
    selected_language: str = ALL_LANGUAGES
    raw_repositories: Tuple[Repository, ...] = ()
    is_refreshing: bool = False
    profile: Optional[Profile] = None
    request_sequence: int = 0
    notifications: List[Notification] = field(default_factory=list)

    def drain_notifications(self) -> List[Notification]:
        """Return pending notifications and forget them."""
        pending = self.notifications
        self.notifications = []
        return pending
