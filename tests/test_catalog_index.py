import pytest

from expiry_scan.catalog.index import CatalogHit, digits_only, gtin_variants, rebuild_index
from expiry_scan.catalog.store import CatalogIndexHolder


def test_ean13_entry_gets_all_gtin_forms():
    index = rebuild_index({"5012345678900": "Paracetamol 500mg"})
    for key in ("5012345678900", "05012345678900"):
        assert index.exact[key] == "Paracetamol 500mg"
    assert index.last8["45678900"] == (CatalogHit("5012345678900", "Paracetamol 500mg"),)


def test_upc_entry_gets_gtin12_and_stripped_forms():
    index = rebuild_index({"012345678905": "Ibuprofen"})
    for key in ("012345678905", "00012345678905", "0012345678905", "12345678905"):
        assert index.exact[key] == "Ibuprofen"
    assert "45678905" in index.last8


def test_unstripped_identifier_is_kept_as_a_key():
    index = rebuild_index({"501-234": "Plaster"})
    assert index.exact["501234"] == "Plaster"
    assert index.exact["501-234"] == "Plaster"
    assert not index.last8


def test_entry_without_digits_is_skipped():
    index = rebuild_index({"ABC": "Nothing", "12345678": "EAN8"})
    assert "ABC" not in index.exact
    assert len(index) == 2


def test_long_non_gtin_code_is_indexed_by_its_own_tail():
    index = rebuild_index({"1234567890123456": "Long code"})
    assert index.last8["90123456"] == (CatalogHit("1234567890123456", "Long code"),)
    assert "01234567890123456" not in index.exact


def test_short_code_has_no_last8_bucket():
    index = rebuild_index({"0012345": "Internal"})
    assert index.exact["0012345"] == "Internal"
    assert index.exact["12345"] == "Internal"
    assert not index.last8


def test_last_writer_wins_but_buckets_accumulate():
    index = rebuild_index({"05012345678900": "First", "5012345678900": "Second"})
    assert index.exact["05012345678900"] == "Second"
    assert [hit.name for hit in index.last8["45678900"]] == ["First", "Second"]


def test_index_tables_are_read_only():
    index = rebuild_index({"5012345678900": "Paracetamol 500mg"})
    with pytest.raises(TypeError):
        index.exact["1"] = "x"


def test_helpers():
    assert digits_only(" 50-12 ") == "5012"
    assert digits_only(None) == ""
    assert gtin_variants("12345678") == ("00000012345678", "0000012345678", "000012345678")


def test_holder_publishes_new_snapshot():
    holder = CatalogIndexHolder()
    before = holder.current
    rebuilt = holder.rebuild({"5012345678900": "Paracetamol 500mg"})
    assert holder.current is rebuilt
    assert before is not rebuilt
    assert "5012345678900" not in before.exact
    assert holder.version == 1
