"""Helpers for building order audit entries.

Audit values are stored as JSON, so every value passes through
``audit_value`` first: datetimes, UUIDs, Decimals and choice enums become
plain strings, containers are normalised recursively, ``None`` stays
``None``.
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


def audit_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, enum.Enum):
        return audit_value(value.value)
    if isinstance(value, str):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [audit_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): audit_value(val) for key, val in value.items()}
    return str(value)
