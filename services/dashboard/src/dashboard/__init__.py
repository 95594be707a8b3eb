from .errors import FetchFailure, SchemaLoadFailure
from .models import (
    ElementRecord,
    SchemaEntry,
    ResolvedTarget,
    UnresolvedReference,
    DroppedReference,
    ResolutionResult,
    data_type_name,
)
from .properties import QC, CATEGORY_NAMES, resolve_property, element_name, override_of
from .resolver import ElementFetcher, collect_references, resolve_references
from .schema_cache import ModelSchema, SchemaCache, SchemaFetcher, SchemaState
from .tandem_api import TandemClient

__all__ = [
    "FetchFailure", "SchemaLoadFailure",
    "ElementRecord", "SchemaEntry", "ResolvedTarget", "UnresolvedReference",
    "DroppedReference", "ResolutionResult", "data_type_name",
    "QC", "CATEGORY_NAMES", "resolve_property", "element_name", "override_of",
    "ElementFetcher", "collect_references", "resolve_references",
    "ModelSchema", "SchemaCache", "SchemaFetcher", "SchemaState",
    "TandemClient",
]
