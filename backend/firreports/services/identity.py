"""
Identity fingerprints for merging accused rows that lack a person table.

The fingerprint is the first non-blank of: mobile number, national ID
(Aadhaar) number, name. Mobile and national ID are trimmed and otherwise
compared verbatim, so "+91 9990001111" and "9990001111" stay distinct.
The name fallback is case-sensitive and unreliable: two different people
with the same name merge, and rows with no identity fields at all share
one blank fingerprint.

Fingerprints are grouping keys only. They are not verified person
identifiers and are never stored.
"""

from collections.abc import Mapping
from typing import Any

MOBILE = "mobile"
NATIONAL_ID = "aadhaar"
NAME = "name"

BLANK_FINGERPRINT = f"{NAME}:"


def _trimmed(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def fingerprint(
    row: Mapping[str, Any],
    *,
    mobile_field: str = "mobile",
    national_id_field: str = "aadhaar",
    name_field: str = "name",
) -> str:
    """
    Compute the identity fingerprint of a person row.

    The source tag prefix keeps a mobile number from colliding with an equal
    national ID or name string. Always returns a non-empty string.
    """
    mobile = _trimmed(row.get(mobile_field))
    if mobile:
        return f"{MOBILE}:{mobile}"

    national_id = _trimmed(row.get(national_id_field))
    if national_id:
        return f"{NATIONAL_ID}:{national_id}"

    name = row.get(name_field)
    if name is None or not str(name).strip():
        return BLANK_FINGERPRINT
    return f"{NAME}:{name}"


def is_blank_fingerprint(value: str) -> bool:
    """True for the shared key of rows with no identity fields."""
    return value == BLANK_FINGERPRINT
