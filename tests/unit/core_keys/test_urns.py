import pytest

from core_keys import (
    MalformedKey,
    convert_long_keys_to_short_keys,
    default_model_urn,
    is_default_model,
    model_id_from_urn,
    model_urn,
)

from tests.helpers.tandem_fixtures import long_key_for, short_key_for


def test_model_urn_is_idempotent():
    assert model_urn("abc") == "urn:adsk.dtm:abc"
    assert model_urn("urn:adsk.dtm:abc") == "urn:adsk.dtm:abc"
    assert model_id_from_urn("urn:adsk.dtm:abc") == "abc"


def test_model_id_from_urn_rejects_facility_urn():
    with pytest.raises(MalformedKey):
        model_id_from_urn("urn:adsk.dtt:abc")


def test_default_model_shares_facility_id():
    facility = "urn:adsk.dtt:XYZ123"
    assert default_model_urn(facility) == "urn:adsk.dtm:XYZ123"
    assert is_default_model(facility, "urn:adsk.dtm:XYZ123")
    assert not is_default_model(facility, "urn:adsk.dtm:other")
    assert not is_default_model(None, "urn:adsk.dtm:XYZ123")


def test_convert_long_keys_to_short_keys():
    values = {long_key_for(1, b"\x00\x00\x00\x07"): 21.5, long_key_for(2): 19.0}
    assert convert_long_keys_to_short_keys(values) == {short_key_for(1): 21.5, short_key_for(2): 19.0}
