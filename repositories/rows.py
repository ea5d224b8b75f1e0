"""
Shared helpers for turning Supabase responses into rows.

Repositories own the row <-> entity mapping; this module only handles the
response envelope and optional-value parsing.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional
from uuid import UUID


def checked_rows(response: Any, action: str) -> List[Mapping[str, Any]]:
    """
    Return response.data as a list, raising on an error envelope.

    Raises:
        RuntimeError: if Supabase returned an error for `action`.
    """

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")
    return list(getattr(response, "data", None) or [])


def first_row(response: Any, action: str) -> Optional[Mapping[str, Any]]:
    rows = checked_rows(response, action)
    return rows[0] if rows else None


def optional_uuid(value: Any) -> Optional[UUID]:
    return UUID(str(value)) if value else None


def optional_str(value: Any) -> Optional[str]:
    return str(value) if value else None


def uuid_str(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None
