"""Data models for Roster Sync.

This module defines the immutable values exchanged between the store, the
HTTP API and the sync client: RosterSnapshot and UserAccount.

Applicants themselves stay plain JSON objects (dicts) so that fields the
server does not know about survive a round trip untouched.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Applicant JSON field names
FIRST_NAME = "FirstName"
LAST_NAME = "LastName"
PASSPORT_NO = "PassportNo"
DATE_OF_BIRTH = "DateOfBirth"
PLACE_OF_BIRTH = "PlaceOfBirth"
ISSUE_PLACE = "IssuePlace"
PHOTO = "photo"
GROUP = "group"

APPLICANT_FIELDS = (
    FIRST_NAME,
    LAST_NAME,
    PASSPORT_NO,
    DATE_OF_BIRTH,
    PLACE_OF_BIRTH,
    ISSUE_PLACE,
    PHOTO,
    GROUP,
)

Applicant = Dict[str, Any]


@dataclass(frozen=True)
class RosterSnapshot:
    """The full roster held by the store at a point in time.

    Snapshots are never mutated after construction; the store swaps in a new
    snapshot for every write.

    Attributes:
        applicants: Applicant records in roster order
        groups: Group names, de-duplicated
        last_modified: ISO-8601 UTC timestamp of the last write (None if
            the roster has never been written)
    """

    applicants: Tuple[Applicant, ...] = ()
    groups: Tuple[Any, ...] = ()
    last_modified: Optional[str] = None

    @classmethod
    def empty(cls, last_modified: Optional[str] = None) -> "RosterSnapshot":
        """Create an empty snapshot."""
        return cls(applicants=(), groups=(), last_modified=last_modified)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RosterSnapshot":
        """Build a snapshot from its wire representation."""
        return cls(
            applicants=tuple(data.get("applicants") or []),
            groups=tuple(data.get("groups") or []),
            last_modified=data.get("lastModified"),
        )

    @property
    def applicant_count(self) -> int:
        return len(self.applicants)

    @property
    def group_count(self) -> int:
        return len(self.groups)

    def copy(self) -> "RosterSnapshot":
        """Deep copy, so callers cannot reach the store's applicant dicts."""
        return RosterSnapshot(
            applicants=copy.deepcopy(self.applicants),
            groups=copy.deepcopy(self.groups),
            last_modified=self.last_modified,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation: {applicants, groups, lastModified}."""
        return {
            "applicants": copy.deepcopy(list(self.applicants)),
            "groups": copy.deepcopy(list(self.groups)),
            "lastModified": self.last_modified,
        }

    def stats(self) -> Dict[str, int]:
        return {
            "totalApplicants": self.applicant_count,
            "totalGroups": self.group_count,
        }


@dataclass(frozen=True)
class UserAccount:
    """A registered API user.

    Attributes:
        user_id: uuid7 hex string
        email: Normalized (stripped, lowercased) email address
        password_hash: Salted SHA-256 hex digest
        salt: Hex salt used for password_hash
        api_key: Opaque key presented in the X-API-Key header
        created_at: ISO-8601 registration time
    """

    user_id: str
    email: str
    password_hash: str
    salt: str
    api_key: str
    created_at: str

    def to_public_dict(self) -> Dict[str, str]:
        return {
            "apiKey": self.api_key,
            "userId": self.user_id,
            "email": self.email,
        }


@dataclass
class CachedRoster:
    """Canonical form of the client's locally cached roster."""

    applicants: List[Applicant] = field(default_factory=list)
    groups: List[Any] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {"applicants": self.applicants, "groups": self.groups}
