from .logger import (
    get_logger,
    log_stage,
    bind_request_id,
    current_request_id,
    log_once_process,
    record_error,
    log_cache_hit,
    log_cache_miss,
    log_cache_set,
)
from .error_codes import ErrorCode

__all__ = [
    "get_logger",
    "log_stage",
    "bind_request_id",
    "current_request_id",
    "log_once_process",
    "record_error",
    "log_cache_hit",
    "log_cache_miss",
    "log_cache_set",
    "ErrorCode",
]
