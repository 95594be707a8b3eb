from .fingerprints import canonical_json, sha256_hex, schema_fp
from .backoff import compute_backoff_delay_ms, async_backoff_sleep
from . import jsonx

__all__ = [
    "canonical_json", "sha256_hex", "schema_fp",
    "compute_backoff_delay_ms", "async_backoff_sleep",
    "jsonx",
]
