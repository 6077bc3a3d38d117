"""User role helpers.

The order API reports an order's creator role as a name ("Admin", "rep")
on some endpoints and as a numeric code on others.
"""

from __future__ import annotations

from typing import Any

# Role names (lower case) -> numeric code used by the user endpoints
USER_TYPE_CODES = {
    "admin": "0",
    "dataentry": "1",
    "data entry": "1",
    "rep": "2",
    "doctor": "3",
    "dr": "3",
    "rep_dataentry": "4",
    "rep dataentry": "4",
    "rep_b": "5",
    "rep b": "5",
}

KNOWN_CODES = frozenset(USER_TYPE_CODES.values())


def normalize_user_type_to_code(value: Any) -> str:
    """
    Map a role name or code to its numeric code.

    Returns "" for a missing or unrecognized role; unknown roles are never
    treated as administrative.
    """
    if value is None:
        return ""
    text = str(value).strip().lower()
    if text in KNOWN_CODES:
        return text
    if text in USER_TYPE_CODES:
        return USER_TYPE_CODES[text]
    if "rep" in text and ("dataentry" in text or "data entry" in text):
        return "4"
    return ""


def is_admin(user_type: Any, admin_user_type: str = "Admin") -> bool:
    """True when ``user_type`` names the administrative role (case-insensitive) or its code."""
    if user_type is None:
        return False
    text = str(user_type).strip().lower()
    if not text:
        return False
    if text == str(admin_user_type).strip().lower():
        return True
    code = normalize_user_type_to_code(text)
    return bool(code) and code == normalize_user_type_to_code(admin_user_type)
