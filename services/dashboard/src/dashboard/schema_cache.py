"""
Per-model attribute schema cache with single-flight loading.

One ``SchemaCache`` is built by the caller and shared for the process. A
model moves from *not requested* to *in flight* (one shared task) to
*loaded*; a failed load goes back to *not requested* so the next call
retries. Loaded schemas are never evicted.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from pydantic import ValidationError

from core_logging import get_logger, log_stage, record_error, log_cache_hit, log_cache_miss, log_cache_set
from core_logging.error_codes import ErrorCode
from core_utils.fingerprints import schema_fp

from .errors import SchemaLoadFailure
from .models import SchemaEntry

logger = get_logger("dashboard.schema_cache")

_NAMESPACE = "schema"


class SchemaFetcher(Protocol):
    async def fetch_schema_for_model(
        self, model_urn: str
    ) -> Sequence[Union[SchemaEntry, Mapping[str, Any]]]: ...


class SchemaState(str, Enum):
    NOT_REQUESTED = "not_requested"
    IN_FLIGHT = "in_flight"
    LOADED = "loaded"


@dataclass(frozen=True)
class ModelSchema:
    model_urn: str
    attributes: List[SchemaEntry] = field(default_factory=list)
    lookup: Dict[str, SchemaEntry] = field(default_factory=dict)
    fingerprint: str = ""

    @classmethod
    def build(cls, model_urn: str, rows: Sequence[Union[SchemaEntry, Mapping[str, Any]]]) -> "ModelSchema":
        attributes = [r if isinstance(r, SchemaEntry) else SchemaEntry.model_validate(r) for r in rows]
        lookup: Dict[str, SchemaEntry] = {}
        for attr in attributes:
            lookup.setdefault(attr.id, attr)
        fp = schema_fp(a.model_dump(exclude_none=True) for a in attributes)
        return cls(model_urn=model_urn, attributes=attributes, lookup=lookup, fingerprint=fp)

    def display_name(self, qualified_id: str) -> str:
        attr = self.lookup.get(qualified_id)
        if attr is not None and attr.display_name:
            return attr.display_name
        return qualified_id


class SchemaCache:
    def __init__(self, fetcher: SchemaFetcher):
        self._fetcher = fetcher
        self._loaded: Dict[str, ModelSchema] = {}
        self._inflight: Dict[str, asyncio.Task] = {}

    def state(self, model_urn: str) -> SchemaState:
        if model_urn in self._loaded:
            return SchemaState.LOADED
        if model_urn in self._inflight:
            return SchemaState.IN_FLIGHT
        return SchemaState.NOT_REQUESTED

    def get_cached(self, model_urn: str) -> Optional[ModelSchema]:
        """Loaded schema or ``None``. Never performs I/O."""
        return self._loaded.get(model_urn)

    def display_name_cached(self, model_urn: str, qualified_id: str) -> str:
        """Synchronous lookup for renderers; the qualified id until the schema is loaded."""
        schema = self._loaded.get(model_urn)
        return schema.display_name(qualified_id) if schema else qualified_id

    @property
    def models(self) -> List[str]:
        return list(self._loaded)

    def __contains__(self, model_urn: object) -> bool:
        return model_urn in self._loaded

    async def load_schema_for_model(self, model_urn: str) -> ModelSchema:
        """
        Return the model's schema, fetching it at most once at a time.

        Concurrent callers for the same model await one shared task. A caller
        being cancelled does not cancel that task for the others. Raises
        ``SchemaLoadFailure`` to every waiter when the fetch fails.
        """
        schema = self._loaded.get(model_urn)
        if schema is not None:
            log_cache_hit(logger, namespace=_NAMESPACE, key=model_urn)
            return schema

        task = self._inflight.get(model_urn)
        if task is None:
            log_cache_miss(logger, namespace=_NAMESPACE, key=model_urn)
            task = asyncio.ensure_future(self._load(model_urn))
            task.add_done_callback(_consume_exception)
            self._inflight[model_urn] = task
        else:
            log_cache_miss(logger, namespace=_NAMESPACE, key=model_urn, shared=True)
        return await asyncio.shield(task)

    async def _load(self, model_urn: str) -> ModelSchema:
        t0 = time.perf_counter()
        try:
            rows = await self._fetcher.fetch_schema_for_model(model_urn)
            schema = ModelSchema.build(model_urn, rows or ())
        except (asyncio.CancelledError, SchemaLoadFailure):
            raise
        except Exception as e:
            if isinstance(e, ValidationError):
                message = f"schema for {model_urn} has malformed attributes: {e.error_count()} errors"
            else:
                message = f"schema load failed for {model_urn}: {e}"
            raise SchemaLoadFailure(model_urn, message) from e
        finally:
            self._inflight.pop(model_urn, None)
        self._loaded[model_urn] = schema
        log_cache_set(
            logger, namespace=_NAMESPACE, key=model_urn,
            size=len(schema.attributes),
            latency_ms=int((time.perf_counter() - t0) * 1000),
            schema_fp=schema.fingerprint,
            model_urn=model_urn,
        )
        return schema

    async def get_property_display_name(self, model_urn: str, qualified_id: str) -> str:
        """``"<category>.<name>"`` for a known attribute, otherwise *qualified_id*. Never raises."""
        try:
            schema = await self.load_schema_for_model(model_urn)
        except SchemaLoadFailure as e:
            record_error(
                ErrorCode.schema_load_failed,
                where="schema_cache.display_name",
                message=str(e),
                logger=logger,
                level="WARNING",
                stage="schema",
                action="fallback_to_qualified_id",
                model_urn=model_urn,
            )
            return qualified_id
        return schema.display_name(qualified_id)

    async def warm(self, model_urns: Sequence[str]) -> Dict[str, Optional[SchemaLoadFailure]]:
        """Load several models concurrently; returns each model's failure (or ``None``)."""
        unique = list(dict.fromkeys(model_urns))
        outcomes = await asyncio.gather(
            *(self.load_schema_for_model(u) for u in unique), return_exceptions=True
        )
        report: Dict[str, Optional[SchemaLoadFailure]] = {}
        for urn, outcome in zip(unique, outcomes):
            if isinstance(outcome, SchemaLoadFailure):
                report[urn] = outcome
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                report[urn] = None
        log_stage(
            logger, "schema", "schema.warm",
            models=len(unique),
            failed=sorted(u for u, f in report.items() if f is not None),
        )
        return report


def _consume_exception(task: asyncio.Task) -> None:
    # Mark the outcome as retrieved when every waiter was cancelled
    if not task.cancelled():
        task.exception()
