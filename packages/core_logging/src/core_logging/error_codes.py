from enum import Enum

class ErrorCode(str, Enum):
    """
    Canonical error codes carried on structured error lines and on the
    exceptions raised by the codec, resolver and schema cache.
    """
    malformed_key       = "malformed_key"
    malformed_xref      = "malformed_xref"
    fetch_failed        = "fetch_failed"
    schema_load_failed  = "schema_load_failed"
    missing_source_key  = "missing_source_key"
    upstream_timeout    = "upstream_timeout"
    upstream_error      = "upstream_error"

__all__ = ["ErrorCode"]
