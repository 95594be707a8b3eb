import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import httpx

from core_utils import jsonx
from core_config.constants import timeout_for_stage, HTTP_RETRY_BASE_MS, HTTP_RETRY_JITTER_MS, HTTP_RETRY_CAP_MS
from core_logging import get_logger, log_stage, current_request_id
from core_utils.backoff import async_backoff_sleep

logger = get_logger("core_http")

_shared_client: httpx.AsyncClient | None = None

def _inject_headers(headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Merge caller headers with process context (request-id).
    Never mutates the input dict.
    """
    base: Dict[str, str] = {}
    rid = current_request_id()
    if rid:
        base["x-request-id"] = rid
    if headers:
        base.update(headers)
    return base

def _build_timeout(seconds: float) -> httpx.Timeout:
    # read dominates; connect/write/pool stay short
    connect = min(2.0, max(0.1, seconds * 0.3))
    read    = max(0.1, seconds)
    write   = min(seconds, 2.0)
    pool    = min(seconds, 2.0)
    return httpx.Timeout(connect=connect, read=read, write=write, pool=pool)

def _retryable(exc: httpx.HTTPError) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or code >= 500
    return True

def get_http_client(*, timeout_ms: Optional[int] = None) -> httpx.AsyncClient:
    """
    Return the process-wide ``httpx.AsyncClient``. Callers must not close it;
    a closed client is replaced on the next call.

    A ``timeout_ms`` larger than the current read timeout widens the shared
    client's timeouts; smaller values leave them unchanged.
    """
    global _shared_client
    base_sec = (timeout_ms / 1000.0) if timeout_ms is not None else timeout_for_stage("default")
    if _shared_client is None or _shared_client.is_closed:
        if _shared_client is not None:
            log_stage(
                logger, "http.client", "recreating_shared_client",
                timeout_sec=base_sec, request_id=(current_request_id() or "startup")
            )
        _shared_client = httpx.AsyncClient(timeout=_build_timeout(base_sec))
        return _shared_client
    current_read = _shared_client.timeout.read
    if current_read is not None and base_sec > float(current_read):
        _shared_client.timeout = _build_timeout(base_sec)
    return _shared_client

async def fetch_json(method: str,
                     url: str,
                     *,
                     json: Any | None = None,
                     params: Optional[Dict[str, Any]] = None,
                     headers: Optional[Dict[str, str]] = None,
                     retry: int = 0,
                     stage: str = "default",
                     timeout_ms: Optional[int] = None) -> Any:
    """
    JSON request with request-id propagation and bounded retry.
    Raises ``httpx.HTTPStatusError`` on non-2xx once retries are spent;
    4xx other than 429 is never retried.
    """
    budget_ms = timeout_ms if timeout_ms is not None else int(timeout_for_stage(stage) * 1000)
    client = get_http_client(timeout_ms=budget_ms)
    hdrs = _inject_headers(headers)
    parts = urlsplit(url)
    op = f"{method.upper()} {(parts.hostname or '')}{parts.path or '/'}"
    log_stage(
        logger, "http.client", "http.client.request",
        op=op,
        method=method.upper(),
        path=parts.path or "/",
        param_keys=sorted((params or {}).keys()),
    )
    t0 = time.perf_counter()
    attempts = max(0, int(retry)) + 1
    last_exc: httpx.HTTPError | None = None
    for attempt in range(attempts):
        try:
            resp = await client.request(method.upper(), url, json=json, params=params, headers=hdrs)
            if resp.status_code >= 400:
                raise httpx.HTTPStatusError(f"{resp.status_code} on {url}", request=resp.request, response=resp)
            log_stage(
                logger, "http.client", "http.client.response",
                op=op,
                status_code=resp.status_code,
                latency_ms=int((time.perf_counter() - t0) * 1000.0),
            )
            if not resp.content:
                return None
            return jsonx.loads(resp.content)
        except httpx.HTTPError as e:
            last_exc = e
            if attempt + 1 < attempts and _retryable(e):
                delay_ms = await async_backoff_sleep(
                    attempt + 1,
                    base_ms=HTTP_RETRY_BASE_MS,
                    jitter_ms=HTTP_RETRY_JITTER_MS,
                    cap_ms=HTTP_RETRY_CAP_MS,
                    mode="decorrelated",
                )
                log_stage(
                    logger, "http.client", "http.client.retry_sleep",
                    attempt=attempt + 1,
                    delay_ms=delay_ms,
                    op=op,
                    error=str(e),
                )
                continue
            break
    assert last_exc is not None
    raise last_exc
