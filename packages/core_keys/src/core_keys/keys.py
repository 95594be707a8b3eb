"""
Encode/decode helpers for the store's binary identifiers.

Every identifier crosses the wire as websafe base64 (``-``/``_`` instead of
``+``/``/``, no ``=`` padding):

  short key   20 bytes   element id, the only shape element lookups accept
  long key    24 bytes   4 flag bytes + short key, returned by scans
  model id    16 bytes   rendered as ``urn:adsk.dtm:<id>``
  xref        40 bytes   model id + long key

All functions here are pure. Flag bytes are carried through untouched and
only ever stripped, never interpreted.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple, TypeVar, Union

from core_logging.error_codes import ErrorCode

from .constants import (
    ELEMENT_FLAGS_SIZE,
    ELEMENT_ID_WITH_FLAGS_SIZE,
    FACILITY_URN_PREFIX,
    MODEL_ID_SIZE,
    MODEL_URN_PREFIX,
    XREF_SIZE,
)
from .errors import MalformedKey, MalformedXref

V = TypeVar("V")

_TO_STANDARD = str.maketrans("-_", "+/")

__all__ = [
    "encode_websafe",
    "decode_websafe",
    "make_websafe",
    "to_short_key",
    "DecodedXref",
    "XrefDecodeFailure",
    "decode_xref",
    "make_xref_key",
    "from_xref_key_array",
    "model_urn",
    "model_id_from_urn",
    "default_model_urn",
    "is_default_model",
    "convert_long_keys_to_short_keys",
]

# ── websafe base64 ─────────────────────────────────────────────────────────
def make_websafe(b64: str) -> str:
    """Turn standard base64 text into its websafe, unpadded form."""
    return b64.replace("+", "-").replace("/", "_").rstrip("=")

def encode_websafe(data: bytes) -> str:
    return base64.urlsafe_b64encode(bytes(data)).decode("ascii").rstrip("=")

def decode_websafe(text: str) -> bytes:
    """
    Decode websafe (or standard) base64, re-adding ``=`` padding as needed.
    Raises ``binascii.Error`` for text outside the base64 alphabet.
    """
    std = text.translate(_TO_STANDARD)
    while len(std) % 4:
        std += "="
    return base64.b64decode(std, validate=True)

def _decode_key(text: str, what: str) -> bytes:
    try:
        return decode_websafe(text)
    except (binascii.Error, TypeError, ValueError) as e:
        raise MalformedKey(f"{what} is not websafe base64: {text!r}", key=text) from e

# ── element keys ───────────────────────────────────────────────────────────
def to_short_key(long_key: str) -> str:
    """Drop the 4 flag bytes of a long key and return the 20-byte short key."""
    raw = _decode_key(long_key, "long key")
    if len(raw) < ELEMENT_ID_WITH_FLAGS_SIZE:
        raise MalformedKey(
            f"long key decodes to {len(raw)} bytes, expected {ELEMENT_ID_WITH_FLAGS_SIZE}",
            key=long_key, size=len(raw),
        )
    return encode_websafe(raw[ELEMENT_FLAGS_SIZE:ELEMENT_ID_WITH_FLAGS_SIZE])

# ── xrefs ──────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class DecodedXref:
    model_urn: str
    element_key: str        # long key, flags included
    ok = True

    @property
    def short_key(self) -> str:
        return to_short_key(self.element_key)

@dataclass(frozen=True)
class XrefDecodeFailure:
    xref: str
    reason: str
    size: int | None = None
    code: ErrorCode = ErrorCode.malformed_xref
    ok = False

    def to_exception(self) -> MalformedXref:
        return MalformedXref(self.reason, xref=self.xref, size=self.size)

def decode_xref(xref: str) -> Union[DecodedXref, XrefDecodeFailure]:
    """
    Split an xref into its model URN and long element key.

    Bad input yields an ``XrefDecodeFailure`` instead of raising: xrefs come
    in bulk from store rows and one bad entry must not sink the batch.
    Bytes past the first 40 are ignored.
    """
    try:
        raw = decode_websafe(xref)
    except (binascii.Error, TypeError, ValueError, AttributeError) as e:
        return XrefDecodeFailure(xref=str(xref), reason=f"xref is not websafe base64: {e}")
    if len(raw) < XREF_SIZE:
        return XrefDecodeFailure(
            xref=xref,
            reason=f"xref decodes to {len(raw)} bytes, expected {XREF_SIZE}",
            size=len(raw),
        )
    model_id = encode_websafe(raw[:MODEL_ID_SIZE])
    element_key = encode_websafe(raw[MODEL_ID_SIZE:XREF_SIZE])
    return DecodedXref(model_urn=MODEL_URN_PREFIX + model_id, element_key=element_key)

def make_xref_key(model_urn_text: str, element_key: str) -> str:
    """
    Build an xref from a model URN and a **long** element key.

    Both parts must decode to their full width (16 and 24 bytes); a short key
    raises ``MalformedKey`` rather than producing a 36-byte blob.
    """
    model_raw = _decode_key(model_id_from_urn(model_urn_text), "model id")
    if len(model_raw) != MODEL_ID_SIZE:
        raise MalformedKey(
            f"model id decodes to {len(model_raw)} bytes, expected {MODEL_ID_SIZE}",
            key=model_urn_text, size=len(model_raw),
        )
    key_raw = _decode_key(element_key, "element key")
    if len(key_raw) != ELEMENT_ID_WITH_FLAGS_SIZE:
        raise MalformedKey(
            f"element key decodes to {len(key_raw)} bytes, expected a {ELEMENT_ID_WITH_FLAGS_SIZE}-byte long key",
            key=element_key, size=len(key_raw),
        )
    return encode_websafe(model_raw + key_raw)

def from_xref_key_array(text: str | None) -> Tuple[List[str], List[str]]:
    """
    Split a blob of back-to-back 40-byte xrefs into parallel lists of bare
    model ids and long keys. A trailing partial record is dropped.
    """
    model_ids: List[str] = []
    element_keys: List[str] = []
    if not text:
        return model_ids, element_keys
    try:
        raw = decode_websafe(text)
    except (binascii.Error, ValueError) as e:
        raise MalformedXref(f"xref array is not websafe base64: {e}", xref=text) from e
    for offset in range(0, len(raw) - XREF_SIZE + 1, XREF_SIZE):
        model_ids.append(encode_websafe(raw[offset:offset + MODEL_ID_SIZE]))
        element_keys.append(encode_websafe(raw[offset + MODEL_ID_SIZE:offset + XREF_SIZE]))
    return model_ids, element_keys

# ── URNs ───────────────────────────────────────────────────────────────────
def model_urn(model_id: str) -> str:
    return model_id if model_id.startswith(MODEL_URN_PREFIX) else MODEL_URN_PREFIX + model_id

def model_id_from_urn(urn: str) -> str:
    if not urn.startswith(MODEL_URN_PREFIX):
        raise MalformedKey(f"not a model urn: {urn!r}", key=urn)
    return urn[len(MODEL_URN_PREFIX):]

def default_model_urn(facility_urn: str) -> str:
    """The default model of a facility shares the facility's id."""
    return facility_urn.replace(FACILITY_URN_PREFIX, MODEL_URN_PREFIX)

def is_default_model(facility_urn: str | None, model_urn_text: str | None) -> bool:
    if not facility_urn or not model_urn_text:
        return False
    return facility_urn.replace(FACILITY_URN_PREFIX, "") == model_urn_text.replace(MODEL_URN_PREFIX, "")

def convert_long_keys_to_short_keys(values: Mapping[str, V]) -> Dict[str, V]:
    """Re-key a mapping keyed by long keys (e.g. last-seen stream values) by short keys."""
    return {to_short_key(k): v for k, v in values.items()}
