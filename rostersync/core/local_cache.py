"""Local roster cache for the sync client.

The cache is a small JSON key-value file. Older clients kept the roster
under two top-level keys (bls_applicants, bls_groups); newer ones keep a
combined object under bls_applicants_data. Both shapes are still read, and
every write stores both so older readers keep working.

The cache remembers a hash of the contents it last wrote, so edits made to
the file by other programs can be detected by polling.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from .models import CachedRoster

logger = logging.getLogger(__name__)

__all__ = [
    "LocalCache",
    "normalize_cached_roster",
    "COMBINED_KEY",
    "LEGACY_APPLICANTS_KEY",
    "LEGACY_GROUPS_KEY",
]

COMBINED_KEY = "bls_applicants_data"
LEGACY_APPLICANTS_KEY = "bls_applicants"
LEGACY_GROUPS_KEY = "bls_groups"

ChangeListener = Callable[[CachedRoster], None]


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def normalize_cached_roster(record: Mapping[str, Any]) -> CachedRoster:
    """Normalize either cache shape into a CachedRoster.

    The combined object wins when both shapes are present. Missing or
    malformed values become empty lists.
    """
    combined = record.get(COMBINED_KEY)
    if isinstance(combined, dict):
        return CachedRoster(
            applicants=_as_list(combined.get("applicants")),
            groups=_as_list(combined.get("groups")),
        )
    return CachedRoster(
        applicants=_as_list(record.get(LEGACY_APPLICANTS_KEY)),
        groups=_as_list(record.get(LEGACY_GROUPS_KEY)),
    )


class LocalCache:
    """JSON file holding the client's disposable copy of the roster.

    Attributes:
        path: Cache file location
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._listeners: List[ChangeListener] = []
        self._known_digest: Optional[str] = None

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback invoked after user edits are saved."""
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def read_record(self) -> Dict[str, Any]:
        """Read the raw key-value record (empty if missing or unreadable)."""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable cache {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def load_roster(self) -> CachedRoster:
        """Load the cached roster in canonical form."""
        return normalize_cached_roster(self.read_record())

    def save_roster(self, roster: CachedRoster, notify: bool = False) -> None:
        """Replace the cached roster wholesale.

        Args:
            roster: New roster contents
            notify: Run change listeners afterwards (set for user edits, not
                for writes made by the sync client itself)
        """
        with self._lock:
            record = self.read_record()
            record[COMBINED_KEY] = {
                "applicants": roster.applicants,
                "groups": roster.groups,
            }
            record[LEGACY_APPLICANTS_KEY] = roster.applicants
            record[LEGACY_GROUPS_KEY] = roster.groups
            self._write_record(record)

        logger.debug(
            f"Cached {len(roster.applicants)} applicants, {len(roster.groups)} groups"
        )

        if notify:
            for listener in list(self._listeners):
                try:
                    listener(roster)
                except Exception as e:
                    logger.error(f"Cache change listener failed: {e}")

    def _write_record(self, record: Dict[str, Any]) -> None:
        """Write atomically via a temp file in the same directory."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(record).encode("utf-8")
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        self._known_digest = _digest(content)

    # ===== Change detection =====

    def mark_seen(self) -> None:
        """Treat the file as it is now as already known."""
        with self._lock:
            self._known_digest = self._current_digest()

    def has_external_changes(self) -> bool:
        """Check whether the file changed since this cache last wrote or saw it.

        Writes made through this object never count. A detected change is
        reported once; the new contents become the known state.
        """
        with self._lock:
            current = self._current_digest()
            changed = current != self._known_digest
            self._known_digest = current
        if changed:
            logger.info(f"Cache file {self.path} changed outside the client")
        return changed

    def _current_digest(self) -> Optional[str]:
        try:
            with open(self.path, "rb") as f:
                return _digest(f.read())
        except FileNotFoundError:
            return None

    def clear(self) -> None:
        """Remove the cache file."""
        with self._lock:
            if self.path.exists():
                self.path.unlink()
            self._known_digest = None


def _digest(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()
