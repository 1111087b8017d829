from datetime import date, timedelta

import pytest

from expiry_scan.barcodes.expiry import ExpiryStatus, expiry_status, parse_expiry


def test_parse_regular_date():
    expiry = parse_expiry("251231")
    assert expiry.date == date(2025, 12, 31)
    assert expiry.iso == "2025-12-31"
    assert expiry.compact == "311225"
    assert expiry.display == "31/12/2025"


def test_day_zero_in_leap_february():
    expiry = parse_expiry("240200")
    assert expiry.date == date(2024, 2, 29)
    assert expiry.compact == "290224"


def test_day_zero_in_december():
    assert parse_expiry("261200").display == "31/12/2026"


def test_two_digit_year_always_maps_to_2000s():
    assert parse_expiry("991231").date.year == 2099
    assert parse_expiry("000101").date.year == 2000


@pytest.mark.parametrize("value", ["", None, "2512", "25123A", "2512310"])
def test_undecodable_fields(value):
    assert parse_expiry(value) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("250230", date(2025, 3, 2)),
        ("250001", date(2024, 12, 1)),
        ("251301", date(2026, 1, 1)),
        ("250000", date(2024, 12, 31)),
        ("251300", date(2026, 1, 31)),
    ],
)
def test_out_of_range_fields_roll_over(value, expected):
    assert parse_expiry(value).date == expected


def test_rolled_over_date_keeps_scanned_fields():
    expiry = parse_expiry("250230")
    assert expiry.iso == "2025-03-02"
    assert expiry.compact == "300225"
    assert expiry.display == "30/02/2025"


class TestExpiryStatus:
    today = date(2025, 6, 1)

    def test_missing(self):
        assert expiry_status(None, today=self.today) is ExpiryStatus.missing

    def test_yesterday_is_expired(self):
        assert expiry_status(self.today - timedelta(days=1), today=self.today) is ExpiryStatus.expired

    def test_today_is_soon(self):
        assert expiry_status(self.today, today=self.today) is ExpiryStatus.soon

    def test_threshold_is_inclusive(self):
        assert expiry_status(self.today + timedelta(days=90), today=self.today) is ExpiryStatus.soon
        assert expiry_status(self.today + timedelta(days=91), today=self.today) is ExpiryStatus.ok

    def test_custom_threshold(self):
        assert expiry_status(self.today + timedelta(days=100), today=self.today, soon_days=120) is ExpiryStatus.soon

    def test_status_values_are_strings(self):
        assert ExpiryStatus.soon == "soon"
