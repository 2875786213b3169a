"""
Secure Finance Manager - Data Validation

PURPOSE: Input validation for path IDs and request payloads
SCOPE: Required-field checks, value ranges, and whitespace sanitizing
DEPENDENCIES: typing
"""

import math
from datetime import datetime
from typing import Dict, Any, List, Optional, Tuple

MAX_PASSWORD_BYTES = 72

# Largest value SQLite can bind as an INTEGER
MAX_ID = 2 ** 63 - 1


def validate_ids(**ids: int) -> Tuple[bool, List[str]]:
    """Validate that every given path ID is a positive integer SQLite can store."""
    errors = []

    for name, value in ids.items():
        if value <= 0:
            errors.append(f"{name} cannot be less than or equal to 0")
        elif value > MAX_ID:
            errors.append(f"{name} cannot be greater than {MAX_ID}")

    return len(errors) == 0, errors


def parse_id_list(raw: str, name: str) -> Tuple[Optional[List[int]], List[str]]:
    """Parse a comma-separated path segment such as "3,7,12" into IDs.

    Returns (ids, errors); ids is None when the segment is not a list of integers.
    """
    parts = [part.strip() for part in raw.split(',')]
    try:
        ids = [int(part) for part in parts]
    except ValueError:
        return None, [f"{name} must be an integer or a comma-separated list of integers"]

    errors = []
    for value in ids:
        is_valid, id_errors = validate_ids(**{name: value})
        if not is_valid:
            errors.extend(id_errors)
            break

    return (ids if not errors else None), errors


def validate_matching_counts(**counts: int) -> Tuple[bool, List[str]]:
    """Validate that paired ID lists and payload lists have the same length."""
    if len(set(counts.values())) > 1:
        names = " and ".join(counts)
        return False, [f"the number of {names} must be equal"]
    return True, []


def validate_batch(items: List[Dict[str, Any]]) -> Tuple[bool, List[str]]:
    """Validate that a batch request carries at least one payload."""
    if not items:
        return False, ["At least one item is required"]
    return True, []


def validate_named_data(data: Dict[str, Any], kind: str) -> Tuple[bool, List[str]]:
    """Validate a new category, subcategory or label."""
    errors = []

    if not (data.get('name') or '').strip():
        errors.append(f"{kind} name is required")

    colour_id = data.get('colour_id')
    if colour_id is None or colour_id <= 0:
        errors.append(f"{kind} colour_id must be greater than 0")
    elif colour_id > MAX_ID:
        errors.append(f"{kind} colour_id cannot be greater than {MAX_ID}")

    return len(errors) == 0, errors


def validate_named_patch(data: Dict[str, Any], kind: str) -> Tuple[bool, List[str]]:
    """Validate a partial update of a category, subcategory or label.

    A colour_id of 0 means "keep the current colour".
    """
    errors = []

    name = data.get('name')
    if name is not None and not name.strip():
        errors.append(f"{kind} name cannot be empty")

    colour_id = data.get('colour_id')
    if colour_id is not None and colour_id < 0:
        errors.append(f"{kind} colour_id cannot be less than 0, use 0 for no colour change")
    elif colour_id is not None and colour_id > MAX_ID:
        errors.append(f"{kind} colour_id cannot be greater than {MAX_ID}")

    category_id = data.get('category_id')
    if category_id is not None:
        errors.extend(validate_ids(category_id=category_id)[1])

    return len(errors) == 0, errors


def validate_entry_data(entry_data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Validate a new entry."""
    errors = []

    amount = entry_data.get('amount')
    if amount is None:
        errors.append("amount is required")
    elif not math.isfinite(amount):
        errors.append("amount must be a finite number")

    time_of_transaction = entry_data.get('time_of_transaction')
    if not (time_of_transaction or '').strip():
        errors.append("time_of_transaction is required")
    elif not _is_iso_timestamp(time_of_transaction):
        errors.append("time_of_transaction must be an ISO 8601 date or timestamp")

    return len(errors) == 0, errors


def validate_entry_patch(entry_data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Validate a partial update of an entry."""
    errors = []

    amount = entry_data.get('amount')
    if amount is not None and not math.isfinite(amount):
        errors.append("amount must be a finite number")

    time_of_transaction = entry_data.get('time_of_transaction')
    if time_of_transaction is not None and not _is_iso_timestamp(time_of_transaction):
        errors.append("time_of_transaction must be an ISO 8601 date or timestamp")

    subcategory_id = entry_data.get('subcategory_id')
    if subcategory_id is not None:
        errors.extend(validate_ids(subcategory_id=subcategory_id)[1])

    return len(errors) == 0, errors


def validate_user_data(user_data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Validate a new user."""
    errors = []

    if not (user_data.get('username') or '').strip():
        errors.append("username is required")

    password = user_data.get('password')
    if not (password or '').strip():
        errors.append("password is required")
    elif len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        errors.append(f"password must be at most {MAX_PASSWORD_BYTES} bytes")

    return len(errors) == 0, errors


def validate_user_patch(user_data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Validate a partial update of the authenticated user."""
    errors = []

    username = user_data.get('username')
    if username is not None and not username.strip():
        errors.append("username cannot be empty")

    password = user_data.get('password')
    if password is not None:
        if not password.strip():
            errors.append("password cannot be empty")
        elif len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
            errors.append(f"password must be at most {MAX_PASSWORD_BYTES} bytes")

    return len(errors) == 0, errors


def sanitize_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Strip surrounding whitespace from string values, passwords excepted."""
    sanitized = {}

    for key, value in data.items():
        if isinstance(value, str) and key != 'password':
            sanitized[key] = value.strip()
        else:
            sanitized[key] = value

    return sanitized


def _is_iso_timestamp(value: str) -> bool:
    try:
        datetime.fromisoformat(value.strip())
    except ValueError:
        return False
    return True
