"""Test helper functions for Roster Sync tests.

This module provides builders for applicant records in the wire format.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from rostersync.core.models import PASSPORT_NO


def make_applicant(
    passport: Optional[str],
    first_name: str = "Test",
    last_name: str = "Applicant",
    group: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build an applicant dict with every wire field populated.

    Pass passport=None to omit PassportNo entirely.
    """
    applicant: Dict[str, Any] = {
        "FirstName": first_name,
        "LastName": last_name,
        "DateOfBirth": "1990-01-01",
        "PlaceOfBirth": "Rabat",
        "IssuePlace": "Casablanca",
        "photo": "data:image/png;base64,iVBORw0KGgo=",
        "group": group,
    }
    if passport is not None:
        applicant[PASSPORT_NO] = passport
    applicant.update(extra)
    return applicant


def passports(applicants: List[Dict[str, Any]]) -> List[Optional[str]]:
    """Passport numbers in roster order."""
    return [a.get(PASSPORT_NO) for a in applicants]


def register_user(client: Any, email: str, password: str = "secret") -> Dict[str, str]:
    """Register through the API and return headers carrying the API key."""
    response = client.post("/api/auth/register", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"X-API-Key": response.get_json()["apiKey"]}
