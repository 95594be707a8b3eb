import logging, sys, os, time, asyncio
import contextvars
from contextlib import contextmanager
from typing import Any, Dict, Optional

import orjson

from core_utils.fingerprints import sha256_hex

# ────────────────────────────────────────────────────────────
# Request correlation
# ────────────────────────────────────────────────────────────
_REQUEST_ID: contextvars.ContextVar[Optional[str]] = \
    contextvars.ContextVar("_REQUEST_ID", default=None)

def bind_request_id(request_id: Optional[str]) -> None:
    """Bind the current request_id into the local context for log injection."""
    _REQUEST_ID.set(request_id)

def current_request_id() -> Optional[str]:
    """Return the currently bound request_id (if any)."""
    return _REQUEST_ID.get()


class _RequestIdFilter(logging.Filter):
    """Inject the bound request_id (if any) into LogRecords that lack it."""
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            rid = _REQUEST_ID.get()
            if rid:
                record.request_id = rid
        return True

# Reserved LogRecord attributes we must not overwrite
_RESERVED: set[str] = {
    "name","msg","args","levelname","levelno",
    "pathname","filename","module","exc_info","exc_text","stack_info",
    "lineno","funcName","created","msecs","relativeCreated",
    "thread","threadName","processName","process","message","asctime",
    "taskName",
}

# Fields kept flat on the envelope; everything else goes under ``meta``
_TOP_LEVEL: set[str] = {
    "ts",
    "level",
    "service",
    "stage",
    "latency_ms",
    "request_id",
    "model_urn",
    "error_code",
    "error_message",
    "where",
    "cache_key",
    "status_code",
    "path",
    "method",
}

def _default(obj):
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="ignore")
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    if hasattr(obj, "value"):  # Enum members (ErrorCode)
        return obj.value
    return str(obj)

class JsonFormatter(logging.Formatter):
    """One JSON object per line: fixed top-level keys, extras nested under ``meta``."""

    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(getattr(record, "created", time.time()))),
            "level": record.levelname,
            "service": os.getenv("SERVICE_NAME", record.name),
            "event": record.getMessage(),
        }
        meta: Dict[str, Any] = {}
        for key, val in record.__dict__.items():
            if key in _RESERVED:
                continue
            if key in _TOP_LEVEL:
                base[key] = val
            else:
                meta[key] = val

        msg_extra = record.__dict__.get("message_extra", None)
        if msg_extra is not None:
            base["message"] = msg_extra
            meta.pop("message_extra", None)
        if record.exc_info:
            meta["exception"] = self.formatException(record.exc_info)
        if meta:
            base["meta"] = meta

        return orjson.dumps(base, default=_default).decode("utf-8")

class StructuredLogger(logging.Logger):
    """
    ``logging.Logger`` that accepts arbitrary keyword arguments
    (``logger.info("msg", stage="resolve")``) and merges them into ``extra``.
    """

    def _log(                                   # noqa: PLR0913 – keep signature
        self,
        level: int,
        msg: str,
        args,
        exc_info=None,
        extra: Dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        if kwargs:
            extra = {**(extra or {}), **kwargs}
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=_sanitize_extra(extra),
            stack_info=stack_info,
            stacklevel=stacklevel,
        )


class DynamicStdoutHandler(logging.StreamHandler):
    """
    Writes to **the current** ``sys.stdout`` on every emit, so
    ``redirect_stdout(...)`` in tests captures lines from loggers created
    before the redirect.
    """

    def emit(self, record: logging.LogRecord) -> None:  # noqa: D401
        self.setStream(sys.stdout)
        super().emit(record)


logging.setLoggerClass(StructuredLogger)


def get_logger(name: str = "dashboard", level: str | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    is_service_root = "." not in name

    if is_service_root:
        if not logger.handlers:
            handler = DynamicStdoutHandler()
            handler.setFormatter(JsonFormatter())
            logger.addHandler(handler)
        logger.propagate = False
    else:
        # dotted loggers bubble up to their service root
        get_logger(name.split(".", 1)[0], level)
        for h in list(logger.handlers):
            logger.removeHandler(h)
        logger.propagate = True

    logger.setLevel(level or os.getenv("SERVICE_LOG_LEVEL", "INFO"))
    if not any(isinstance(f, _RequestIdFilter) for f in logger.filters):
        logger.addFilter(_RequestIdFilter())
    return logger

def _emit_stage_log(logger: logging.Logger, stage: str, event: str, level: int = logging.INFO, **extras: Any) -> None:
    payload = {"stage": stage, **extras}
    logger.log(level, event, extra=_sanitize_extra(payload))

# ---------------------------------------------------------------------------#
# log_stage – imperative, decorator and context-manager in one               #
# ---------------------------------------------------------------------------#
def log_stage(logger: logging.Logger, stage: str, event: str, **fixed: Any):
    """
    *Imperative*  →  log_stage(logger, "resolve", "xref_dropped", xref=x)
    *Decorator*   →  @log_stage(logger, "schema", "load")
                     async def load(...):
                         ...
    ``.ctx(**dynamic)`` wraps a block with ``<event>.start``/``<event>.done``.
    """
    _emit_stage_log(logger, stage, event, **fixed)

    def _decorator(fn):
        if asyncio.iscoroutinefunction(fn):
            async def _aw(*a, **kw):
                t0 = time.perf_counter()
                try:
                    return await fn(*a, **kw)
                finally:
                    _emit_stage_log(
                        logger, stage, f"{event}.done",
                        latency_ms=(time.perf_counter() - t0) * 1000,
                        **fixed,
                    )
            return _aw

        def _w(*a, **kw):
            t0 = time.perf_counter()
            try:
                return fn(*a, **kw)
            finally:
                _emit_stage_log(
                    logger, stage, f"{event}.done",
                    latency_ms=(time.perf_counter() - t0) * 1000,
                    **fixed,
                )
        return _w

    @contextmanager
    def _ctx(**dynamic):
        _emit_stage_log(logger, stage, f"{event}.start", **(fixed | dynamic))
        t0 = time.perf_counter()
        try:
            yield
        finally:
            _emit_stage_log(
                logger, stage, f"{event}.done",
                latency_ms=(time.perf_counter() - t0) * 1000,
                **(fixed | dynamic),
            )

    _decorator.ctx = _ctx
    return _decorator

# ────────────────────────────────────────────────────────────
# Error lines
# ────────────────────────────────────────────────────────────
def record_error(
    code: Any,
    *,
    where: str,
    message: str,
    logger: logging.Logger,
    action: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    level: str = "ERROR",
    **extras: Any,
) -> None:
    """
    Emit one normalized error line. Contained failures (a dropped reference,
    one model's failed fetch) are recorded at WARNING so dashboards can tell
    them apart from faults that reach the caller.
    """
    levelno = getattr(logging, (level or "ERROR").upper(), logging.ERROR)
    payload = {
        "stage": extras.pop("stage", None) or "error",
        "error_code": getattr(code, "value", code),
        "error_message": message,
        "where": where,
        **({"action": action} if action else {}),
        **({"context": context} if isinstance(context, dict) else {}),
        **extras,
    }
    logger.log(levelno, "error", extra=_sanitize_extra(payload))

def _sanitize_extra(extra: Dict[str, Any] | None) -> Dict[str, Any]:
    """
    Rename keys in `extra` that would collide with LogRecord attributes.
    - `message` is remapped to `message_extra` to preserve content.
    - all other collisions are namespaced as `meta_<key>`.
    """
    if not extra:
        return {}
    safe: Dict[str, Any] = {}
    for k, v in extra.items():
        lk = str(k)
        if lk == "meta" and isinstance(v, dict):
            for mk, mv in v.items():
                mk_norm = str(mk)
                safe[f"meta_{mk_norm}" if mk_norm in _RESERVED else mk_norm] = mv
            continue
        if lk in _RESERVED:
            safe["message_extra" if lk == "message" else f"meta_{lk}"] = v
        else:
            safe[lk] = v
    return safe

# ---------------------------------------------------------------------------#
# log_once_process – one line per key for the lifetime of the process        #
# ---------------------------------------------------------------------------#
_ONCE_KEYS: set[str] = set()
def log_once_process(logger: logging.Logger, key: str, *, level: int = logging.INFO, event: str, **kwargs: Any) -> None:
    if key in _ONCE_KEYS:
        return
    _ONCE_KEYS.add(key)
    logger.log(level, event, extra=_sanitize_extra(kwargs))

# ────────────────────────────────────────────────────────────
# Cache logging helpers
# ────────────────────────────────────────────────────────────
def cache_key_fp(key: Any) -> str:
    """Deterministic fingerprint for cache keys (avoid logging raw keys)."""
    return "sha256:" + sha256_hex(str(key))[:16]

def log_cache_hit(logger: logging.Logger, *, namespace: str, key: Any, backend: str = "memory") -> None:
    _emit_stage_log(logger, "cache", "cache.hit", level=logging.DEBUG,
                    backend=backend, namespace=namespace, key_fp=cache_key_fp(key))

def log_cache_miss(logger: logging.Logger, *, namespace: str, key: Any, backend: str = "memory",
                   shared: bool = False) -> None:
    _emit_stage_log(logger, "cache", "cache.miss",
                    backend=backend, namespace=namespace, key_fp=cache_key_fp(key), shared=bool(shared))

def log_cache_set(logger: logging.Logger, *, namespace: str, key: Any, backend: str = "memory",
                  size: Optional[int] = None, latency_ms: Optional[float] = None, **extras: Any) -> None:
    _emit_stage_log(logger, "cache", "cache.set",
                    backend=backend, namespace=namespace, key_fp=cache_key_fp(key),
                    size=size, latency_ms=latency_ms, **extras)
