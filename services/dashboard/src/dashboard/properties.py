"""
Qualified property ids and override-aware value lookup.

A qualified id is ``family:property``. A leading ``!`` on the property part
(``n:!n``) marks the user override of ``n:n``; wherever both are present on a
record the override wins.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple, Union

OVERRIDE_MARK = "!"


class QC:
    """Qualified columns the dashboard reads."""
    KEY = "k"
    ELEMENT_FLAGS = "n:a"
    CATEGORY_ID = "n:c"
    NAME = "n:n"
    OVERRIDE_NAME = "n:!n"
    CLASSIFICATION = "n:v"
    OVERRIDE_CLASSIFICATION = "n:!v"
    X_PARENT = "x:p"
    X_ROOMS = "x:r"


# Category ids the resolver names; everything else is an "Asset"
CATEGORY_NAMES = {
    160: "Room",
    3600: "Space",
    240: "Level",
}
DEFAULT_TARGET_TYPE = "Asset"
UNNAMED = "Unnamed"


def split_qualified_id(qualified_id: str) -> Tuple[str, str]:
    family, sep, prop = qualified_id.partition(":")
    if not sep or not family or not prop:
        raise ValueError(f"not a qualified property id: {qualified_id!r}")
    return family, prop

def is_override(qualified_id: str) -> bool:
    return split_qualified_id(qualified_id)[1].startswith(OVERRIDE_MARK)

def override_of(qualified_id: str) -> str:
    """``n:n`` → ``n:!n``; an id that is already an override is returned as is."""
    family, prop = split_qualified_id(qualified_id)
    if prop.startswith(OVERRIDE_MARK):
        return qualified_id
    return f"{family}:{OVERRIDE_MARK}{prop}"

def standard_of(qualified_id: str) -> str:
    family, prop = split_qualified_id(qualified_id)
    return f"{family}:{prop.lstrip(OVERRIDE_MARK)}"


def _properties(record: Any) -> Mapping[str, Any]:
    props = getattr(record, "properties", None)
    return props if props is not None else record

def first_value(record: Union[Mapping[str, Any], Any], qualified_id: str) -> Optional[Any]:
    """First value of a (possibly multi-valued) property; ``None`` when absent or empty."""
    values = _properties(record).get(qualified_id)
    if values is None:
        return None
    if isinstance(values, (list, tuple)):
        if not values:
            return None
        value = values[0]
    else:
        value = values
    if value is None or value == "":
        return None
    return value

def resolve_property(record: Union[Mapping[str, Any], Any], qualified_id: str,
                     default: Optional[Any] = None) -> Optional[Any]:
    """Override value if present, else the standard value, else *default*."""
    for qid in (override_of(qualified_id), standard_of(qualified_id)):
        value = first_value(record, qid)
        if value is not None:
            return value
    return default

def element_name(record: Union[Mapping[str, Any], Any], default: str = UNNAMED) -> str:
    return str(resolve_property(record, QC.NAME, default))

def category_id(record: Union[Mapping[str, Any], Any]) -> Optional[int]:
    value = first_value(record, QC.CATEGORY_ID)
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None

def category_type(category: Optional[int], names: Mapping[int, str] = CATEGORY_NAMES) -> str:
    if category is None:
        return DEFAULT_TARGET_TYPE
    return names.get(category, DEFAULT_TARGET_TYPE)
