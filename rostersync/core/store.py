"""In-memory roster storage for Roster Sync.

RosterStore holds one roster snapshot. Every write builds a complete new
snapshot and swaps the reference under a lock, so a reader sees either the
old roster or the new one, never a partially applied write.

TenantStore partitions rosters by API key for deployments that require one.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from .merge import merge_snapshot
from .models import Applicant, RosterSnapshot
from .timestamp_utils import current_timestamp
from .validation import validate_applicants, validate_groups

logger = logging.getLogger(__name__)

__all__ = ["RosterStore", "TenantStore"]


class RosterStore:
    """Authoritative in-memory roster.

    Attributes:
        name: Label used in log messages (tenant id or "default")
    """

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._snapshot = RosterSnapshot.empty()
        self._lock = threading.Lock()

    def read(self) -> RosterSnapshot:
        """Return a copy of the current snapshot."""
        return self._snapshot.copy()

    def merge(
        self,
        applicants: Sequence[Applicant],
        groups: Optional[Sequence[Any]] = None,
    ) -> RosterSnapshot:
        """Merge incoming applicants and groups into the roster.

        Raises:
            ValidationError: If applicants is not a list (store unchanged)
        """
        applicants = copy.deepcopy(validate_applicants(applicants))
        groups = copy.deepcopy(validate_groups(groups))

        with self._lock:
            before = self._snapshot.applicant_count
            merged = merge_snapshot(self._snapshot, applicants, groups)
            self._snapshot = merged

        logger.info(
            f"[{self.name}] Merged {len(applicants)} incoming applicants: "
            f"{before} -> {merged.applicant_count} applicants, "
            f"{merged.group_count} groups"
        )
        return merged.copy()

    def replace(
        self,
        applicants: Optional[Sequence[Applicant]] = None,
        groups: Optional[Sequence[Any]] = None,
    ) -> RosterSnapshot:
        """Overwrite the roster with the given data, without deduplication.

        A missing applicants or groups value is stored as empty.

        Raises:
            ValidationError: If applicants is present but not a list
        """
        if applicants is None:
            applicants = []
        applicants = copy.deepcopy(validate_applicants(applicants))
        groups = copy.deepcopy(validate_groups(groups))

        snapshot = RosterSnapshot(
            applicants=tuple(applicants),
            groups=tuple(groups),
            last_modified=current_timestamp(),
        )
        with self._lock:
            self._snapshot = snapshot

        logger.info(
            f"[{self.name}] Replaced roster: {snapshot.applicant_count} applicants, "
            f"{snapshot.group_count} groups"
        )
        return snapshot.copy()

    def clear(self) -> None:
        """Reset the roster to empty with a fresh timestamp."""
        with self._lock:
            self._snapshot = RosterSnapshot.empty(last_modified=current_timestamp())
        logger.info(f"[{self.name}] Cleared roster")

    def status(self) -> Dict[str, Any]:
        """Summary used by the sync status endpoint."""
        snapshot = self._snapshot
        return {
            "hasSyncedData": snapshot.last_modified is not None,
            "lastModified": snapshot.last_modified,
            "applicantCount": snapshot.applicant_count,
            "groupCount": snapshot.group_count,
        }


class TenantStore:
    """Rosters partitioned by tenant key.

    Reading an unseen tenant yields an empty detached store; the partition is
    only recorded on the first write.
    """

    def __init__(self) -> None:
        self._stores: Dict[str, RosterStore] = {}
        self._lock = threading.Lock()

    def get(self, tenant: str, create: bool = False) -> RosterStore:
        """Return the store for a tenant.

        Args:
            tenant: Tenant key (the user's API key)
            create: Record a new partition if the tenant is unseen

        Returns:
            RosterStore for the tenant
        """
        with self._lock:
            store = self._stores.get(tenant)
            if store is not None:
                return store
            store = RosterStore(name=_short_name(tenant))
            if create:
                self._stores[tenant] = store
                logger.info(f"Created roster partition {store.name}")
            return store

    def __contains__(self, tenant: object) -> bool:
        return tenant in self._stores

    def __len__(self) -> int:
        return len(self._stores)

    def tenants(self) -> List[str]:
        with self._lock:
            return list(self._stores)

    def totals(self) -> Dict[str, int]:
        """Applicant and group counts summed over all partitions."""
        with self._lock:
            stores = list(self._stores.values())
        applicants = 0
        groups = 0
        for store in stores:
            status = store.status()
            applicants += status["applicantCount"]
            groups += status["groupCount"]
        return {"applicants": applicants, "groups": groups}


def _short_name(tenant: str) -> str:
    """Log-safe label for a tenant key."""
    if len(tenant) <= 12:
        return tenant
    return f"{tenant[:8]}..."
