"""
Repository view engine.

Pure derivations of the dashboard view from a ViewState: the language list,
the searched/filtered repositories and per-repository presentation fields.
Nothing here mutates its inputs or caches results.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from depscan.domain.repository_models import Repository, display_fields
from depscan.domain.view_models import ALL_LANGUAGES, ViewState


SECONDS_PER_DAY = 86400

# Tag colours for common languages (GitHub linguist palette)
LANGUAGE_COLORS: Dict[str, str] = {
    "TypeScript": "#3178c6",
    "JavaScript": "#f1e05a",
    "Python": "#3572a5",
    "Go": "#00add8",
    "Rust": "#dea584",
    "Java": "#b07219",
    "Kotlin": "#a97bff",
    "Swift": "#f05138",
    "C": "#555555",
    "C++": "#f34b7d",
    "C#": "#178600",
    "Ruby": "#701516",
    "PHP": "#4f5d95",
    "Shell": "#89e051",
    "HTML": "#e34c26",
    "CSS": "#563d7c",
    "Dart": "#00b4ab",
    "Vue": "#41b883",
    "HCL": "#844fba",
    "Jupyter Notebook": "#da5b0b",
}
DEFAULT_LANGUAGE_COLOR = "#8b949e"


def distinct_languages(repositories: Iterable[Repository]) -> List[str]:
    """
    Non-null languages across the repositories, duplicates collapsed.

    Languages keep the order in which they first appear so the filter
    options are stable for a given list.
    """
    seen = {}
    for repository in repositories:
        if repository.language is not None:
            seen.setdefault(repository.language, None)
    return list(seen)


def matches_search(repository: Repository, search_text: str) -> bool:
    """Case-insensitive substring match on name or description."""
    if not search_text:
        return True
    needle = search_text.lower()
    if needle in repository.name.lower():
        return True
    return repository.description is not None and needle in repository.description.lower()


def matches_language(repository: Repository, selected_language: str) -> bool:
    """True when no language is selected or the repository's language equals it."""
    return selected_language == ALL_LANGUAGES or repository.language == selected_language


def filter_repositories(
    repositories: Sequence[Repository],
    search_text: str = "",
    selected_language: str = ALL_LANGUAGES
) -> List[Repository]:
    """
    Repositories matching both the language filter and the search text.

    The result is a subsequence of the input in the same relative order.
    """
    return [
        repository
        for repository in repositories
        if matches_language(repository, selected_language)
        and matches_search(repository, search_text)
    ]


def elapsed_days(last_updated: datetime, now: Optional[datetime] = None) -> int:
    """
    Whole days since last_updated, rounded up.

    Timestamps in the future count as zero days.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    seconds = (now - last_updated).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / SECONDS_PER_DAY)


def relative_age(last_updated: datetime, now: Optional[datetime] = None) -> str:
    """
    Bucketed "last updated" label.

    0 days is "Today", 1 is "Yesterday", then days, weeks (days // 7),
    months (days // 30) and years (days // 365).
    """
    days = elapsed_days(last_updated, now)
    if days == 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    if days < 365:
        return f"{days // 30} months ago"
    return f"{days // 365} years ago"


def language_tag_color(language: Optional[str]) -> str:
    """Tag colour for a language; unknown or missing languages get the neutral colour."""
    if language is None:
        return DEFAULT_LANGUAGE_COLOR
    return LANGUAGE_COLORS.get(language, DEFAULT_LANGUAGE_COLOR)


def present_repository(repository: Repository, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Repository fields plus presentation-ready age label and tag colour."""
    presented = repository.to_dict()
    presented["relative_age"] = relative_age(repository.last_updated, now)
    presented["language_color"] = language_tag_color(repository.language)
    return presented


def build_view(state: ViewState, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Assemble the dashboard payload from the current state.

    Everything is recomputed on each call. Pending notifications are not
    drained here; the controller decides when they have been shown.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    filtered = filter_repositories(
        state.raw_repositories,
        state.search_text,
        state.selected_language,
    )
    return {
        "profile": display_fields(state.profile),
        "languages": distinct_languages(state.raw_repositories),
        "repositories": [present_repository(repository, now) for repository in filtered],
        "total_count": len(state.raw_repositories),
        "filtered_count": len(filtered),
        "search_text": state.search_text,
        "selected_language": state.selected_language,
        "is_refreshing": state.is_refreshing,
    }
