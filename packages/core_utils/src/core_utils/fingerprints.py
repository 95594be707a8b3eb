import hashlib
from typing import Any, Iterable, Mapping, Union

import orjson

# stable encoding: sorted keys, no microseconds
_OPTS = orjson.OPT_SORT_KEYS | orjson.OPT_OMIT_MICROSECONDS

__all__ = ["canonical_json", "sha256_hex", "schema_fp"]


def canonical_json(obj: Any) -> bytes:
    """Serialize *obj* to compact, key-sorted JSON bytes."""
    return orjson.dumps(obj, option=_OPTS)


def sha256_hex(data: Union[str, bytes, bytearray, memoryview]) -> str:
    """Return hex SHA-256 digest. Strings are UTF-8 encoded."""
    if isinstance(data, str):
        b = data.encode("utf-8")
    elif isinstance(data, (bytearray, memoryview)):
        b = bytes(data)
    elif isinstance(data, bytes):
        b = data
    else:
        raise TypeError(f"sha256_hex expects str or bytes-like, got {type(data).__name__}")
    return hashlib.sha256(b).hexdigest()


def schema_fp(attributes: Iterable[Mapping[str, Any]]) -> str:
    """
    Fingerprint of a model's attribute catalog, independent of row order.
    Logged next to schema loads so operators can tell whether two sessions
    saw the same catalog.
    """
    rows = sorted((canonical_json(dict(a)) for a in attributes))
    return "sha256:" + sha256_hex(b"\n".join(rows))
