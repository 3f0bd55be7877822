"""
Field-level diff between a stored buyer and the fields of an update.
"""
from collections import OrderedDict
from typing import Any, Dict, Mapping


def _comparable(value: Any) -> Any:
    """Collections compare as sets; the sorted list form is also what gets recorded."""
    if isinstance(value, (set, frozenset, list, tuple)):
        return sorted(set(value))
    return value


def compute_diff(old: Mapping[str, Any], new_fields: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Changed fields only, in new_fields order: {field: {"old": ..., "new": ...}}.

    Keys absent from new_fields are never inspected. An empty result means the
    update changes nothing.
    """
    diff = OrderedDict()
    for key, new_value in new_fields.items():
        old_value = _comparable(old.get(key))
        new_value = _comparable(new_value)
        if old_value != new_value:
            diff[key] = {'old': old_value, 'new': new_value}
    return diff
