from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core_logging.error_codes import ErrorCode

from .errors import FetchFailure
from .properties import QC, first_value

# Attribute data-type codes used by the store's schema endpoint
ATTRIBUTE_TYPES: Dict[int, str] = {
    0: "Unknown",
    1: "Boolean",
    2: "Integer",
    3: "Double",
    4: "Float",
    10: "BLOB",
    11: "DbKey",
    20: "String",
    21: "LocalizableString",
    22: "DateTime",
    23: "GeoLocation",
    24: "Position",
    25: "Url",
}

def data_type_name(code: Optional[int]) -> str:
    return ATTRIBUTE_TYPES.get(code, f"Type {code}") if code is not None else ATTRIBUTE_TYPES[0]


class ElementRecord(BaseModel):
    """One store row: its short key plus qualified property → values."""
    model_config = ConfigDict(frozen=True)

    key: str
    properties: Dict[str, List[Any]] = Field(default_factory=dict)

    @field_validator("properties", mode="before")
    @classmethod
    def _coerce_values(cls, v):
        # Single values are wrapped so every property is a list
        if v is None:
            return {}
        return {str(k): (list(val) if isinstance(val, (list, tuple)) else [val]) for k, val in dict(v).items()}

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ElementRecord":
        """Parse the wire shape ``{"k": <key>, "n:n": [...], ...}``."""
        key = row.get(QC.KEY)
        if not isinstance(key, str) or not key:
            raise ValueError("store row has no key")
        return cls(key=key, properties={k: v for k, v in row.items() if k != QC.KEY})

    @classmethod
    def coerce(cls, obj: Union["ElementRecord", Mapping[str, Any]]) -> "ElementRecord":
        return obj if isinstance(obj, ElementRecord) else cls.from_row(obj)

    def first(self, qualified_id: str) -> Optional[Any]:
        return first_value(self.properties, qualified_id)


class SchemaEntry(BaseModel):
    """One row of a model's attribute catalog."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    fam: Optional[str] = None
    col: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    data_type: Optional[int] = Field(default=None, alias="dataType")
    data_type_context: Optional[str] = Field(default=None, alias="dataTypeContext")
    description: Optional[str] = None
    flags: Optional[int] = None
    forge_unit: Optional[str] = Field(default=None, alias="forgeUnit")

    @property
    def data_type_name(self) -> str:
        return data_type_name(self.data_type)

    @property
    def display_name(self) -> Optional[str]:
        if self.category and self.name:
            return f"{self.category}.{self.name}"
        return None


class ResolvedTarget(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    name: str
    type: str
    model_urn: str
    short_key: str
    category_id: Optional[int] = None


class UnresolvedReference(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    source_key: Any
    xref: str
    model_urn: str
    short_key: str
    reason: Literal["not_found", "fetch_failed"]


class DroppedReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_key: Any
    xref: str
    code: ErrorCode
    reason: str


@dataclass
class ResolutionResult:
    """
    Outcome of one resolution pass. ``by_xref`` is the per-pass cache of
    resolved targets; it belongs to the caller and is never shared.
    """
    resolved: Dict[Hashable, ResolvedTarget] = field(default_factory=dict)
    unresolved: List[UnresolvedReference] = field(default_factory=list)
    dropped: List[DroppedReference] = field(default_factory=list)
    failures: Dict[str, FetchFailure] = field(default_factory=dict)
    by_xref: Dict[str, ResolvedTarget] = field(default_factory=dict)

    def get(self, source_key: Hashable) -> Optional[ResolvedTarget]:
        return self.resolved.get(source_key)

    @property
    def attempted(self) -> int:
        return len(self.resolved) + len(self.unresolved)
