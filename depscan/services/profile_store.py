"""
Profile store and resolver.

Stores profile records in-memory, keyed by session subject id, and resolves
the single profile shown on the dashboard.
"""

import copy
import logging
from typing import Optional, Dict, Any, List

from depscan.domain.repository_models import Profile, InvalidProfileRecord

logger = logging.getLogger(__name__)


class ProfileStoreError(Exception):
    """Raised when the profile store cannot answer a lookup."""
    pass


class ProfileStore:
    """
    In-memory profile record store.

    Records are plain dictionaries. Lookups return every record whose id
    matches so that callers can detect integrity problems.
    """

    def __init__(self):
        """Initialize an empty store."""
        self._records: List[Dict[str, Any]] = []

    def get_records_by_id(self, subject_id: str) -> List[Dict[str, Any]]:
        """
        Return all records matching a subject id.

        Args:
            subject_id: Session subject identifier

        Returns:
            Matching records (deep copies, so callers cannot mutate the store)
        """
        return [
            copy.deepcopy(record)
            for record in self._records
            if str(record.get("id")) == str(subject_id)
        ]

    def upsert(self, record: Dict[str, Any]) -> None:
        """
        Insert a record, replacing any existing records with the same id.

        Args:
            record: Profile record; must carry an "id"
        """
        if record.get("id") in (None, ""):
            raise ProfileStoreError("Profile record requires an id")

        record_id = str(record["id"])
        self._records = [r for r in self._records if str(r.get("id")) != record_id]
        self._records.append(copy.deepcopy(record))

    def add_record(self, record: Dict[str, Any]) -> None:
        """Append a record without de-duplication (imports and fixtures)."""
        self._records.append(copy.deepcopy(record))


def resolve_profile(store: ProfileStore, subject_id: str) -> Optional[Profile]:
    """
    Resolve the profile for a subject.

    Exactly one matching record is expected. Zero or several matches, an
    unusable record or a store failure all resolve to None; the dashboard
    falls back to placeholder display values and nothing is retried.

    Args:
        store: Profile store to query
        subject_id: Session subject identifier

    Returns:
        Profile if exactly one valid record matches, None otherwise
    """
    try:
        records = store.get_records_by_id(subject_id)
    except ProfileStoreError as error:
        logger.warning(f"Profile lookup failed: {error}")
        return None

    if len(records) != 1:
        if records:
            logger.warning(
                f"Profile lookup returned {len(records)} records for one subject; ignoring"
            )
        return None

    try:
        return Profile.from_record(records[0])
    except InvalidProfileRecord as error:
        logger.warning(f"Ignoring invalid profile record: {error}")
        return None


# Global singleton instance
_profile_store: Optional[ProfileStore] = None


def get_profile_store() -> ProfileStore:
    """
    Get the global profile store instance.

    Returns:
        ProfileStore instance
    """
    global _profile_store
    if _profile_store is None:
        _profile_store = ProfileStore()
    return _profile_store
