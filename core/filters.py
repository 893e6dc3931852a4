# core/filters.py
from typing import Any, Dict, Optional
from urllib.parse import urlencode

Filters = Dict[str, Any]


def merge_filters(current: Optional[Filters], new: Optional[Filters]) -> Filters:
    """
    Overlay new filter fields on the current ones.
    Fields missing from `new` keep their previous value; there is no way to
    unset a field other than overwriting it with None or "".
    """
    merged: Filters = dict(current or {})
    merged.update(new or {})
    return merged


def _encode(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def clean_params(filters: Optional[Filters]) -> Dict[str, str]:
    """Drop None and empty-string fields and stringify the rest for a query string."""
    out: Dict[str, str] = {}
    for key, value in (filters or {}).items():
        if value is None or value == "":
            continue
        out[key] = _encode(value)
    return out


def query_string(filters: Optional[Filters]) -> str:
    return urlencode(clean_params(filters))
