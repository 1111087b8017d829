from datetime import date

import pytest

from expiry_scan.barcodes.decoder import ParsedCode, decode, normalize_and_decode
from expiry_scan.barcodes.expiry import ExpiryStatus

TODAY = date(2025, 1, 1)
GS = "\x1d"


def test_full_parenthesized_code():
    parsed = normalize_and_decode(
        "(01)05012345678900(17)250228(10)ABC123(21)SN1(30)007", today=TODAY
    )
    assert parsed.valid
    assert parsed.gtin14 == "05012345678900"
    assert parsed.gtin13 == "5012345678900"
    assert parsed.expiry_iso == "2025-02-28"
    assert parsed.expiry_display == "28/02/2025"
    assert parsed.expiry_compact == "280225"
    assert parsed.expiry_status is ExpiryStatus.soon
    assert parsed.batch == "ABC123"
    assert parsed.serial == "SN1"
    assert parsed.quantity == 7


def test_day_zero_expiry_is_last_day_of_month():
    parsed = normalize_and_decode("(17)250100", today=TODAY)
    assert parsed.expiry_display == "31/01/2025"
    assert parsed.expiry_compact == "310125"
    # An expiry alone does not identify a product.
    assert not parsed.valid


def test_quantity_defaults_to_one():
    assert normalize_and_decode("(01)05012345678900").quantity == 1
    assert normalize_and_decode("(01)05012345678900(30)000").quantity == 1


def test_gtin12_inside_ai01_is_padded():
    parsed = normalize_and_decode("(01)012345678905")
    assert parsed.gtin14 == "00012345678905"
    assert parsed.gtin13 == "0012345678905"


def test_short_ai01_value_is_ignored():
    parsed = normalize_and_decode("(01)12345678901(10)LOT")
    assert not parsed.valid
    assert parsed.gtin14 == ""
    assert parsed.batch == "LOT"


@pytest.mark.parametrize(
    "digits",
    ["012345678905", "5012345678900", "05012345678900", "15012345678907"],
)
def test_gtin14_repadding_is_idempotent(digits):
    first = normalize_and_decode(f"(01){digits}")
    second = normalize_and_decode(f"(01){first.gtin14}")
    assert first.gtin14 == second.gtin14
    assert len(first.gtin14) == 14


def test_plain_ean13_round_trip():
    parsed = normalize_and_decode("5012345678900")
    assert parsed.valid
    assert parsed.gtin13 == "5012345678900"
    assert parsed.gtin14 == "05012345678900"
    assert parsed.expiry_status is ExpiryStatus.missing


def test_headerless_stream_recovers_all_fields():
    parsed = normalize_and_decode("010501234567890017250228" + "10LOT9", today=TODAY)
    assert parsed.gtin14 == "05012345678900"
    assert parsed.expiry_display == "28/02/2025"
    assert parsed.batch == "LOT9"


def test_raw_stream_with_group_separators():
    parsed = normalize_and_decode(f"0105012345678900" f"2112345{GS}10LOT")
    assert parsed.serial == "12345"
    assert parsed.batch == "LOT"
    assert parsed.raw == f"0105012345678900" f"2112345{GS}10LOT"


def test_batch_stops_at_delimiter():
    assert normalize_and_decode("(01)05012345678900(10)AB|C").batch == "AB"


def test_expiry_status_relative_to_today():
    assert normalize_and_decode("(17)241231", today=TODAY).expiry_status is ExpiryStatus.expired
    assert normalize_and_decode("(17)260101", today=TODAY).expiry_status is ExpiryStatus.ok


def test_soon_threshold_is_configurable():
    parsed = normalize_and_decode("(17)250301", today=TODAY, soon_days=30)
    assert parsed.expiry_status is ExpiryStatus.ok


def test_impossible_date_rolls_over():
    parsed = normalize_and_decode("(01)05012345678900(17)251340", today=TODAY)
    assert parsed.valid
    assert parsed.expiry_iso == "2026-02-09"
    assert parsed.expiry_compact == "401325"
    assert parsed.expiry_status is ExpiryStatus.ok


@pytest.mark.parametrize("raw", ["", None, "hello", "1234", "(99)abc"])
def test_unparseable_input_is_invalid(raw):
    parsed = normalize_and_decode(raw)
    assert not parsed.valid
    assert parsed.gtin14 == ""
    assert parsed.quantity == 1


def test_decode_parenthesized_text_directly():
    parsed = decode("(10)LOT(01)05012345678900")
    assert parsed.valid
    assert parsed.batch == "LOT"
    assert parsed.raw == "(10)LOT(01)05012345678900"


def test_to_dict_serialises_status():
    data = normalize_and_decode("(17)250228", today=TODAY).to_dict()
    assert data["expiry_status"] == "soon"
    assert data["expiry_iso"] == "2025-02-28"
    assert ParsedCode().to_dict()["expiry_status"] == "missing"
