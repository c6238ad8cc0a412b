"""Merge utilities for Roster Sync.

This module combines a stored roster with the applicants and groups pushed by
a client.

Rules:
- Applicants are keyed by PassportNo. Existing records are inserted first,
  then incoming ones; an incoming record with a key already present replaces
  the stored record whole (last writer wins, no per-field merge).
- Records keep the position where their key was first seen, so stored
  applicants keep their order and new keys are appended.
- Records without a string passport number have no identity and are dropped
  from the result, on both the stored and the incoming side.
- Groups are the ordered union of stored and incoming names.

Functions here are pure apart from reading the clock for lastModified.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import PASSPORT_NO, Applicant, RosterSnapshot
from .timestamp_utils import current_timestamp
from .validation import validate_applicants, validate_groups

logger = logging.getLogger(__name__)

__all__ = ["applicant_key", "merge_applicants", "merge_groups", "merge_snapshot"]


def applicant_key(applicant: Any) -> Optional[str]:
    """Return the identity key of an applicant, or None if it has none.

    Keys are compared exactly (case-sensitive, no trimming). Only non-empty
    strings count as passport numbers; numbers, booleans and other values
    are never coerced, so 123 and "123" cannot collide.
    """
    if not isinstance(applicant, dict):
        return None
    key = applicant.get(PASSPORT_NO)
    if not isinstance(key, str) or key == "":
        return None
    return key


def merge_applicants(
    existing: Iterable[Applicant],
    incoming: Iterable[Applicant],
) -> List[Applicant]:
    """Merge two applicant sequences by passport number.

    Args:
        existing: Applicants already stored
        incoming: Applicants pushed by the client, applied after existing

    Returns:
        New list with at most one applicant per passport number
    """
    by_key: Dict[str, Applicant] = {}
    dropped = 0

    for source in (existing, incoming):
        for applicant in source:
            key = applicant_key(applicant)
            if key is None:
                dropped += 1
                continue
            by_key[key] = applicant

    if dropped:
        logger.debug(f"Dropped {dropped} applicants without {PASSPORT_NO}")

    return list(by_key.values())


def merge_groups(existing: Iterable[Any], incoming: Iterable[Any]) -> List[Any]:
    """Ordered union of group names, first occurrence wins."""
    merged: List[Any] = []
    seen = set()
    for source in (existing, incoming):
        for group in source:
            try:
                if group in seen:
                    continue
                seen.add(group)
            except TypeError:
                # Unhashable entries fall back to an equality scan
                if group in merged:
                    continue
            merged.append(group)
    return merged


def merge_snapshot(
    existing: RosterSnapshot,
    incoming_applicants: Sequence[Applicant],
    incoming_groups: Optional[Sequence[Any]] = None,
) -> RosterSnapshot:
    """Merge incoming data into an existing snapshot.

    Args:
        existing: Current stored snapshot (not modified)
        incoming_applicants: Applicants from the client (must be a list)
        incoming_groups: Group names from the client (None means none)

    Returns:
        New RosterSnapshot with a fresh lastModified

    Raises:
        ValidationError: If incoming_applicants or incoming_groups is not a list
    """
    incoming_applicants = validate_applicants(incoming_applicants)
    incoming_groups = validate_groups(incoming_groups)

    applicants = merge_applicants(existing.applicants, incoming_applicants)
    groups = merge_groups(existing.groups, incoming_groups)

    return RosterSnapshot(
        applicants=tuple(applicants),
        groups=tuple(groups),
        last_modified=current_timestamp(),
    )
