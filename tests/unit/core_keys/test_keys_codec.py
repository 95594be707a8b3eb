import pytest

from core_keys import (
    MalformedKey,
    MalformedXref,
    decode_websafe,
    decode_xref,
    encode_websafe,
    from_xref_key_array,
    make_websafe,
    make_xref_key,
    to_short_key,
)
from core_logging import ErrorCode

from tests.helpers.tandem_fixtures import b64, element_bytes, model_bytes

ELEMENT = bytes(range(1, 21))


def test_concrete_xref_scenario():
    xref = b64(bytes(16) + b"\x00\x00\x00\x00" + ELEMENT)

    decoded = decode_xref(xref)

    assert decoded.ok
    assert decoded.model_urn == "urn:adsk.dtm:AAAAAAAAAAAAAAAAAAAAAA"
    assert decode_websafe(to_short_key(decoded.element_key)) == ELEMENT
    assert decode_websafe(decoded.short_key) == ELEMENT


def test_to_short_key_drops_flag_bytes():
    flags = b"\xfb\xff\xbf\xfe"
    long_key = b64(flags + ELEMENT)

    short_key = to_short_key(long_key)

    assert short_key == b64(ELEMENT)
    assert "+" not in short_key and "/" not in short_key and "=" not in short_key


def test_to_short_key_rejects_a_short_key():
    with pytest.raises(MalformedKey) as exc:
        to_short_key(b64(ELEMENT))
    assert exc.value.size == 20
    assert exc.value.code is ErrorCode.malformed_key


def test_to_short_key_rejects_non_base64():
    with pytest.raises(MalformedKey):
        to_short_key("not*base64!")


def test_decode_websafe_tolerates_missing_padding_and_standard_alphabet():
    raw = b"\xfb\xff\xbf\x00\x01"
    assert decode_websafe(encode_websafe(raw)) == raw
    assert decode_websafe("+/+/") == decode_websafe("-_-_")
    assert make_websafe("ab+/cd==") == "ab-_cd"


def test_decode_xref_round_trips_through_make_xref_key():
    xref = b64(model_bytes(7) + b"\x80\x00\x00\x01" + element_bytes(9))

    decoded = decode_xref(xref)

    assert make_xref_key(decoded.model_urn, decoded.element_key) == xref
    # re-encoding is a fixed point
    assert encode_websafe(decode_websafe(xref)) == xref


def test_decode_xref_ignores_trailing_bytes():
    raw = model_bytes(3) + b"\x00" * 4 + element_bytes(4)
    assert decode_xref(b64(raw + b"\xaa\xbb")) == decode_xref(b64(raw))


def test_decode_xref_short_blob_is_a_failure_not_an_exception():
    short = b64(model_bytes(1) + element_bytes(2) + b"\x00\x00\x00")   # 39 bytes

    failure = decode_xref(short)

    assert not failure.ok
    assert failure.size == 39
    assert failure.code is ErrorCode.malformed_xref
    exc = failure.to_exception()
    assert isinstance(exc, MalformedXref)
    assert exc.xref == short


def test_decode_xref_garbage_is_a_failure():
    failure = decode_xref("%%%")
    assert not failure.ok
    assert failure.size is None


def test_make_xref_key_refuses_short_keys():
    urn = "urn:adsk.dtm:" + b64(model_bytes(1))
    with pytest.raises(MalformedKey) as exc:
        make_xref_key(urn, b64(element_bytes(1)))
    assert exc.value.size == 20


def test_make_xref_key_requires_model_urn_prefix():
    with pytest.raises(MalformedKey):
        make_xref_key(b64(model_bytes(1)), b64(b"\x00" * 4 + element_bytes(1)))


def test_from_xref_key_array_drops_trailing_partial_record():
    first = model_bytes(1) + b"\x00\x00\x00\x01" + element_bytes(1)
    second = model_bytes(2) + b"\x00\x00\x00\x02" + element_bytes(2)

    model_ids, keys = from_xref_key_array(b64(first + second + b"\x05" * 10))

    assert model_ids == [b64(model_bytes(1)), b64(model_bytes(2))]
    assert keys == [b64(b"\x00\x00\x00\x01" + element_bytes(1)), b64(b"\x00\x00\x00\x02" + element_bytes(2))]


def test_from_xref_key_array_empty_and_invalid():
    assert from_xref_key_array("") == ([], [])
    assert from_xref_key_array(None) == ([], [])
    assert from_xref_key_array(b64(b"\x01" * 39)) == ([], [])
    with pytest.raises(MalformedXref):
        from_xref_key_array("@@@@")
