"""
Store REST adapter implementing the resolver's and schema cache's fetch
capabilities. The core modules only see the two protocol methods.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import httpx

from core_config import Settings, get_settings
from core_config.constants import TARGET_COLUMNS
from core_http.client import fetch_json
from core_logging import ErrorCode, get_logger, log_once_process, log_stage, record_error

from .errors import FetchFailure, SchemaLoadFailure
from .models import ElementRecord, SchemaEntry
from .properties import QC

logger = get_logger("dashboard.tandem_api")


class TandemClient:
    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        token: Optional[str] = None,
        region: Optional[str] = None,
        columns: Sequence[str] = TARGET_COLUMNS,
    ):
        self._settings = settings or get_settings()
        self._token = token if token is not None else self._settings.tandem_token
        self._region = region if region is not None else self._settings.tandem_region
        self._columns = list(columns)
        log_once_process(
            logger, f"tandem_api:{self.base_url}",
            event="tandem_api.configured",
            base_url=self.base_url,
            region=self._region,
            authenticated=bool(self._token),
        )

    @property
    def base_url(self) -> str:
        return self._settings.base_url

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if self._region:
            headers["Region"] = self._region
        return headers

    async def fetch_elements_by_short_keys(self, model_urn: str, short_keys: Sequence[str]) -> List[ElementRecord]:
        """``POST /modeldata/{urn}/scan`` restricted to *short_keys*."""
        if not short_keys:
            return []
        url = f"{self.base_url}/modeldata/{model_urn}/scan"
        payload = {
            "keys": list(short_keys),
            "qualifiedColumns": self._columns,
            "includeHistory": False,
        }
        try:
            data = await fetch_json(
                "POST", url,
                json=payload,
                headers=self._headers(),
                retry=self._settings.http_retry,
                stage="scan",
                timeout_ms=self._settings.timeout_scan_ms,
            )
        except (httpx.HTTPError, ValueError) as e:
            _record_upstream(e, "tandem_api.scan", model_urn)
            raise FetchFailure(model_urn, f"scan failed for {model_urn}: {e}") from e
        return _parse_rows(data, model_urn)

    async def fetch_schema_for_model(self, model_urn: str) -> List[SchemaEntry]:
        """``GET /modeldata/{urn}/schema`` → the attribute catalog."""
        url = f"{self.base_url}/modeldata/{model_urn}/schema"
        try:
            data = await fetch_json(
                "GET", url,
                headers=self._headers(),
                retry=self._settings.http_retry,
                stage="schema",
                timeout_ms=self._settings.timeout_schema_ms,
            )
        except (httpx.HTTPError, ValueError) as e:
            _record_upstream(e, "tandem_api.schema", model_urn)
            raise SchemaLoadFailure(model_urn, f"schema fetch failed for {model_urn}: {e}") from e
        attributes = (data or {}).get("attributes") if isinstance(data, dict) else None
        return [SchemaEntry.model_validate(a) for a in (attributes or []) if isinstance(a, dict)]


def _parse_rows(data: Any, model_urn: str) -> List[ElementRecord]:
    # The scan response leads with a version entry that has no key
    rows: List[ElementRecord] = []
    skipped = 0
    for item in data or ():
        if isinstance(item, dict) and item.get(QC.KEY):
            rows.append(ElementRecord.from_row(item))
        else:
            skipped += 1
    log_stage(logger, "scan", "scan.parsed", model_urn=model_urn, rows=len(rows), skipped=skipped)
    return rows


def _record_upstream(exc: Exception, where: str, model_urn: str) -> None:
    code = ErrorCode.upstream_timeout if isinstance(exc, httpx.TimeoutException) else ErrorCode.upstream_error
    status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
    record_error(
        code,
        where=where,
        message=str(exc) or type(exc).__name__,
        logger=logger,
        level="WARNING",
        stage=where.rsplit(".", 1)[-1],
        model_urn=model_urn,
        status_code=status,
        error_type=type(exc).__name__,
    )
