"""
Partial-merge updates.

A patch is a pydantic model whose fields are all optional. Only the keys the
client actually sent (and that are not null) are applied: top-level values
overwrite, and dict values are merged one level deep into the existing dict.
"""

from typing import Any, Dict

from pydantic import BaseModel


def patch_values(patch: BaseModel) -> Dict[str, Any]:
    """The supplied, non-null fields of a patch, with nulls inside nested dicts dropped too."""
    values = patch.model_dump(exclude_unset=True, exclude_none=True, by_alias=True)
    cleaned = {}
    for key, value in values.items():
        if isinstance(value, dict):
            value = {k: v for k, v in value.items() if v is not None}
            if not value:
                continue
        cleaned[key] = value
    return cleaned


def merge_patch(document: Dict[str, Any], values: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of `document` with `values` merged in (one nested level)."""
    merged = dict(document)
    for key, value in values.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = {**current, **value}
        else:
            merged[key] = value
    return merged
