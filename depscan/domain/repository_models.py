"""
Domain models for sessions, profiles and repositories.
Validates the loosely-typed payloads coming from GitHub and the profile store.
"""
from typing import Dict, Any, Optional
from dataclasses import dataclass
from datetime import datetime, timezone


class InvalidRepositoryPayload(ValueError):
    """Raised when a repository record from the remote API cannot be used."""
    pass


class InvalidProfileRecord(ValueError):
    """Raised when a profile record is missing required attributes."""
    pass


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO 8601 timestamp (GitHub uses a trailing "Z") into an aware datetime.

    Args:
        value: ISO format string or datetime

    Returns:
        Timezone-aware datetime (naive values are assumed to be UTC)

    Raises:
        ValueError: If the value is not a parseable timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Not a timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _non_negative(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError, OverflowError):
        return 0


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class Session:
    """Signed-in subject, optionally carrying a delegated GitHub token."""
    subject_id: str
    access_token: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def has_token(self) -> bool:
        return bool(self.access_token)

    @property
    def view_key(self) -> str:
        """Key of this browser session's dashboard state."""
        return self.session_id or self.subject_id


@dataclass(frozen=True)
class Profile:
    """Local profile record for a session subject."""
    id: str
    username: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Profile":
        """
        Build a profile from a store record.

        Raises:
            InvalidProfileRecord: If id or username is missing
        """
        record_id = record.get("id")
        username = record.get("username")
        if record_id in (None, "") or not username:
            raise InvalidProfileRecord("Profile record requires id and username")

        return cls(
            id=str(record_id),
            username=str(username),
            full_name=_optional_text(record.get("full_name")),
            avatar_url=_optional_text(record.get("avatar_url")),
        )

    @classmethod
    def from_github_user(cls, subject_id: str, user: Dict[str, Any]) -> "Profile":
        """Build a profile from GitHub's /user response."""
        return cls.from_record({
            "id": subject_id,
            "username": user.get("login"),
            "full_name": user.get("name"),
            "avatar_url": user.get("avatar_url"),
        })

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage and JSON serialization."""
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
        }


FALLBACK_USERNAME = "User"


def display_fields(profile: Optional[Profile]) -> Dict[str, Any]:
    """
    Presentation values for the profile header.

    A missing profile degrades to a generic username; the initial is always
    a single upper-case letter derived from the username.
    """
    username = profile.username if profile else FALLBACK_USERNAME
    return {
        "username": username,
        "full_name": profile.full_name if profile else None,
        "avatar_url": profile.avatar_url if profile else None,
        "initial": username[:1].upper() or FALLBACK_USERNAME[0],
    }


@dataclass(frozen=True)
class Repository:
    """Repository metadata as listed by the remote API."""
    id: int
    name: str
    full_name: str
    description: Optional[str]
    language: Optional[str]
    star_count: int
    fork_count: int
    watcher_count: int
    last_updated: datetime
    canonical_url: str
    is_private: bool

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Repository":
        """
        Build a repository from a GitHub REST payload.

        Counts are clamped to zero; optional text fields default to None.

        Raises:
            InvalidRepositoryPayload: If required attributes are missing or malformed
        """
        if not isinstance(payload, dict):
            raise InvalidRepositoryPayload("Repository payload must be an object")

        missing = [
            key for key in ("id", "name", "updated_at", "html_url")
            if payload.get(key) in (None, "")
        ]
        if missing:
            raise InvalidRepositoryPayload(
                f"Repository payload missing fields: {', '.join(missing)}"
            )

        try:
            repo_id = int(payload["id"])
            last_updated = parse_timestamp(payload["updated_at"])
        except (TypeError, ValueError, OverflowError) as error:
            raise InvalidRepositoryPayload(f"Malformed repository payload: {error}") from error

        name = str(payload["name"])
        return cls(
            id=repo_id,
            name=name,
            full_name=str(payload.get("full_name") or name),
            description=_optional_text(payload.get("description")),
            language=_optional_text(payload.get("language")),
            star_count=_non_negative(payload.get("stargazers_count")),
            fork_count=_non_negative(payload.get("forks_count")),
            watcher_count=_non_negative(payload.get("watchers_count")),
            last_updated=last_updated,
            canonical_url=str(payload["html_url"]),
            is_private=bool(payload.get("private", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "language": self.language,
            "star_count": self.star_count,
            "fork_count": self.fork_count,
            "watcher_count": self.watcher_count,
            "last_updated": self.last_updated.isoformat(),
            "canonical_url": self.canonical_url,
            "is_private": self.is_private,
        }
