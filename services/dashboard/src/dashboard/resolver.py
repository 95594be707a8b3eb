"""
Batch resolution of cross-model references (xrefs) into named targets.

Source rows carry xrefs (``x:p`` parent, ``x:r`` rooms, ...). Each xref is
decoded to (model URN, long key), reduced to a short key, grouped by model
and fetched with one call per model. Fetched rows are joined back on the
short key, never on the long key: two xrefs that differ only in their flag
bytes point at the same element.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import (
    Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional,
    Protocol, Sequence, Union,
)

from pydantic import ValidationError

from core_keys import MalformedKey, decode_xref, to_short_key
from core_logging import get_logger, log_stage, record_error
from core_logging.error_codes import ErrorCode

from .errors import FetchFailure
from .models import (
    DroppedReference,
    ElementRecord,
    ResolutionResult,
    ResolvedTarget,
    UnresolvedReference,
)
from .properties import CATEGORY_NAMES, QC, category_id, category_type, element_name, first_value

logger = get_logger("dashboard.resolver")

SourceRecord = Union[ElementRecord, Mapping[str, Any]]


class ElementFetcher(Protocol):
    async def fetch_elements_by_short_keys(
        self, model_urn: str, short_keys: Sequence[str]
    ) -> Sequence[Union[ElementRecord, Mapping[str, Any]]]: ...


@dataclass(frozen=True)
class PendingReference:
    source_key: Hashable
    xref: str
    model_urn: str
    short_key: str


@dataclass
class ReferencePlan:
    """References grouped by target model, plus the ones that failed to decode."""
    by_model: Dict[str, List[PendingReference]] = field(default_factory=dict)
    dropped: List[DroppedReference] = field(default_factory=list)

    def short_keys(self, model_urn: str) -> List[str]:
        # order-preserving de-duplication
        return list(dict.fromkeys(p.short_key for p in self.by_model.get(model_urn, ())))

    @property
    def reference_count(self) -> int:
        return sum(len(v) for v in self.by_model.values())


def _default_source_key(record: SourceRecord) -> Hashable:
    if isinstance(record, ElementRecord):
        return record.key
    key = record.get(QC.KEY)
    if key is None:
        raise ValueError("source record has no key")
    return key

def extract_reference(record: SourceRecord, priority: Sequence[str]) -> Optional[str]:
    """First xref present among *priority*, or ``None`` when the record has none."""
    for qualified_id in priority:
        value = first_value(record, qualified_id)
        if isinstance(value, str) and value:
            return value
    return None

def collect_references(
    sources: Iterable[SourceRecord],
    priority: Union[str, Sequence[str]],
    *,
    source_key: Optional[Callable[[SourceRecord], Hashable]] = None,
) -> ReferencePlan:
    """Decode every source's reference and group the results by target model."""
    if isinstance(priority, str):
        priority = (priority,)
    keyfn = source_key or _default_source_key
    plan = ReferencePlan()
    for record in sources:
        xref = extract_reference(record, priority)
        if xref is None:
            continue
        try:
            skey = keyfn(record)
        except (KeyError, ValueError) as e:
            _drop(plan, None, xref, ErrorCode.missing_source_key, str(e) or "source record has no key")
            continue
        decoded = decode_xref(xref)
        if not decoded.ok:
            _drop(plan, skey, xref, decoded.code, decoded.reason)
            continue
        try:
            short_key = to_short_key(decoded.element_key)
        except MalformedKey as e:
            _drop(plan, skey, xref, e.code, str(e))
            continue
        plan.by_model.setdefault(decoded.model_urn, []).append(
            PendingReference(source_key=skey, xref=xref, model_urn=decoded.model_urn, short_key=short_key)
        )
    return plan

def _drop(plan: ReferencePlan, source_key: Hashable, xref: str, code: ErrorCode, reason: str) -> None:
    plan.dropped.append(DroppedReference(source_key=source_key, xref=xref, code=code, reason=reason))
    record_error(
        code,
        where="resolver.decode",
        message=reason,
        logger=logger,
        level="WARNING",
        stage="resolve",
        action="reference_dropped",
        context={"source_key": str(source_key)},
    )

async def _fetch_model(
    fetcher: ElementFetcher, model_urn: str, short_keys: List[str]
) -> Union[Dict[str, ElementRecord], FetchFailure]:
    """One batched fetch; the result is indexed by short key."""
    t0 = time.perf_counter()
    try:
        rows = await fetcher.fetch_elements_by_short_keys(model_urn, short_keys)
    except Exception as e:
        failure = e if isinstance(e, FetchFailure) else FetchFailure(model_urn, f"element fetch failed for {model_urn}: {e}")
        if failure is not e:
            failure.__cause__ = e
        record_error(
            ErrorCode.fetch_failed,
            where="resolver.fetch_elements",
            message=str(failure),
            logger=logger,
            level="WARNING",
            stage="resolve",
            model_urn=model_urn,
            key_count=len(short_keys),
            error_type=type(e).__name__,
        )
        return failure

    index: Dict[str, ElementRecord] = {}
    skipped = 0
    for row in rows or ():
        try:
            element = ElementRecord.coerce(row)
        except (ValueError, ValidationError):
            skipped += 1
            continue
        index.setdefault(element.key, element)
    log_stage(
        logger, "resolve", "resolve.model_fetched",
        model_urn=model_urn,
        requested=len(short_keys),
        returned=len(index),
        skipped_rows=skipped,
        latency_ms=int((time.perf_counter() - t0) * 1000),
    )
    return index

def _make_target(element: ElementRecord, model_urn: str, category_names: Mapping[int, str]) -> ResolvedTarget:
    cat = category_id(element)
    return ResolvedTarget(
        name=element_name(element),
        type=category_type(cat, category_names),
        model_urn=model_urn,
        short_key=element.key,
        category_id=cat,
    )

async def resolve_references(
    sources: Iterable[SourceRecord],
    priority: Union[str, Sequence[str]],
    fetcher: ElementFetcher,
    *,
    source_key: Optional[Callable[[SourceRecord], Hashable]] = None,
    category_names: Mapping[int, str] = CATEGORY_NAMES,
) -> ResolutionResult:
    """
    Resolve the reference of every source record to a named target.

    ``priority`` lists the qualified properties to look at, first present
    wins (e.g. ``("x:p", "x:r")``). The fetcher is called at most once per
    distinct target model; calls for different models run concurrently.
    Malformed references are dropped, failed models leave their references
    unresolved, and nothing is retried here.
    """
    t0 = time.perf_counter()
    plan = collect_references(sources, priority, source_key=source_key)
    result = ResolutionResult(dropped=list(plan.dropped))
    model_urns = list(plan.by_model)

    outcomes = await asyncio.gather(
        *(_fetch_model(fetcher, urn, plan.short_keys(urn)) for urn in model_urns)
    )

    for urn, outcome in zip(model_urns, outcomes):
        pending = plan.by_model[urn]
        if isinstance(outcome, FetchFailure):
            result.failures[urn] = outcome
            result.unresolved.extend(_unresolved(p, "fetch_failed") for p in pending)
            continue
        targets: Dict[str, ResolvedTarget] = {}
        for ref in pending:
            target = targets.get(ref.short_key)
            if target is None:
                element = outcome.get(ref.short_key)
                if element is None:
                    result.unresolved.append(_unresolved(ref, "not_found"))
                    continue
                target = targets[ref.short_key] = _make_target(element, urn, category_names)
            result.resolved[ref.source_key] = target
            result.by_xref[ref.xref] = target

    log_stage(
        logger, "resolve", "resolve.batch",
        references=plan.reference_count,
        models=len(model_urns),
        resolved=len(result.resolved),
        unresolved=len(result.unresolved),
        dropped=len(result.dropped),
        failed_models=sorted(result.failures),
        latency_ms=int((time.perf_counter() - t0) * 1000),
    )
    return result

def _unresolved(ref: PendingReference, reason: str) -> UnresolvedReference:
    return UnresolvedReference(
        source_key=ref.source_key,
        xref=ref.xref,
        model_urn=ref.model_urn,
        short_key=ref.short_key,
        reason=reason,
    )
