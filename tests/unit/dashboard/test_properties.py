import pytest

from dashboard.models import ElementRecord, SchemaEntry, data_type_name
from dashboard.properties import (
    QC,
    category_type,
    element_name,
    is_override,
    override_of,
    resolve_property,
    split_qualified_id,
    standard_of,
)


def test_override_wins_over_standard_value():
    row = {"k": "key1", "n:n": ["AHU-1"], "n:!n": ["Air Handler 1"]}
    assert resolve_property(row, QC.NAME) == "Air Handler 1"
    assert element_name(ElementRecord.from_row(row)) == "Air Handler 1"


def test_empty_override_falls_back_to_standard():
    record = ElementRecord.from_row({"k": "key1", "n:n": ["AHU-1"], "n:!n": [""]})
    assert element_name(record) == "AHU-1"
    assert resolve_property(record, QC.CLASSIFICATION, default="none") == "none"


def test_qualified_id_helpers():
    assert split_qualified_id("n:!v") == ("n", "!v")
    assert override_of("n:v") == "n:!v"
    assert override_of("n:!v") == "n:!v"
    assert standard_of("n:!v") == "n:v"
    assert is_override("n:!n") and not is_override("n:n")
    with pytest.raises(ValueError):
        split_qualified_id("nocolon")


def test_category_type_names_known_categories_only():
    assert category_type(160) == "Room"
    assert category_type(3600) == "Space"
    assert category_type(240) == "Level"
    assert category_type(42) == "Asset"
    assert category_type(None) == "Asset"


def test_element_record_wraps_scalar_values():
    record = ElementRecord.from_row({"k": "abc", "n:c": 160, "n:n": ["One", "Two"]})
    assert record.properties["n:c"] == [160]
    assert record.first("n:n") == "One"
    with pytest.raises(ValueError):
        ElementRecord.from_row({"n:n": ["no key"]})


def test_schema_entry_parses_wire_aliases():
    entry = SchemaEntry.model_validate(
        {"id": "z:5Q", "name": "Flow", "category": "HVAC", "dataType": 20, "forgeUnit": "lps", "extra": 1}
    )
    assert entry.data_type == 20
    assert entry.data_type_name == "String"
    assert entry.forge_unit == "lps"
    assert entry.display_name == "HVAC.Flow"


def test_data_type_name_unknown_codes():
    assert data_type_name(0) == "Unknown"
    assert data_type_name(None) == "Unknown"
    assert data_type_name(77) == "Type 77"
