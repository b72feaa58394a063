"""
Metadata value kinds and the reconciliation rule used when two copies of
the same node or relationship are combined.

Open metadata bags are classified into a closed set of kinds, and each
kind has exactly one merge function. Values the rule does not model are
OPAQUE and the surviving (first) value always wins.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple


class MetadataKind(str, Enum):
    """Kinds a metadata value can take."""
    SCALAR = "scalar"
    LIST = "list"
    MAPPING = "mapping"
    OPAQUE = "opaque"


# Numeric quality fields: the higher value survives
QUALITY_FIELDS = frozenset({"importance", "centrality", "strength", "confidence"})

COMMUNITY_FIELD = "community"

_SCALAR_TYPES = (str, int, float, bool, datetime, date, Enum)


def kind_of(value: Any) -> MetadataKind:
    """Classify a metadata value."""
    if value is None or isinstance(value, _SCALAR_TYPES):
        return MetadataKind.SCALAR
    if isinstance(value, (list, tuple)):
        return MetadataKind.LIST
    if isinstance(value, dict):
        return MetadataKind.MAPPING
    return MetadataKind.OPAQUE


def _merge_scalar(first: Any, second: Any) -> Any:
    return first


def _merge_list(first: Any, second: Any) -> List[Any]:
    return [*first, *second]


def _merge_mapping(first: Any, second: Any) -> Dict[str, Any]:
    return {**first, **second}


def _merge_opaque(first: Any, second: Any) -> Any:
    return first


_MERGERS: Dict[MetadataKind, Callable[[Any, Any], Any]] = {
    MetadataKind.SCALAR: _merge_scalar,
    MetadataKind.LIST: _merge_list,
    MetadataKind.MAPPING: _merge_mapping,
    MetadataKind.OPAQUE: _merge_opaque,
}


def merge_value(first: Any, second: Any) -> Any:
    """
    Merge ``second`` into the surviving ``first`` value.

    Lists concatenate and mappings shallow-merge (second wins on overlap)
    only when both sides share that kind; any other combination keeps
    ``first``. Equal values are never duplicated.
    """
    if first == second:
        return first
    kind = kind_of(first)
    if kind != kind_of(second):
        return first
    return _MERGERS[kind](first, second)


def merge_quality(first: Optional[float], second: Optional[float]) -> Optional[float]:
    """Max of two quality scores, ignoring a missing side."""
    if first is None:
        return second
    if second is None:
        return first
    return max(first, second)


def merge_community(first: Optional[str], second: Optional[str]) -> Optional[str]:
    """Combine community labels as ``"first+second"``."""
    if first is None:
        return second
    if second is None or first == second:
        return first
    return f"{first}+{second}"


def reconcile_metadata(
    first: Dict[str, Any],
    second: Dict[str, Any],
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Reconcile two metadata bags.

    Equal values are kept once: identical lists are not concatenated and an
    identical community label is not combined with itself.

    Args:
        first: Metadata of the surviving element
        second: Metadata being merged into it

    Returns:
        (merged metadata, keys whose value changed)
    """
    merged = dict(first)
    changed: List[str] = []

    for key, value in second.items():
        current = merged.get(key)
        if key in QUALITY_FIELDS:
            new_value = merge_quality(current, value)
        elif key == COMMUNITY_FIELD:
            new_value = merge_community(current, value)
        elif current is None:
            new_value = value
        else:
            new_value = merge_value(current, value)

        if key not in merged or new_value != current:
            changed.append(key)
        merged[key] = new_value

    return merged, changed
