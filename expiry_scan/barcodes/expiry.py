from __future__ import annotations

import calendar
import enum
from dataclasses import dataclass
from datetime import date, timedelta

EXPIRY_SOON_DAYS = 90


class ExpiryStatus(str, enum.Enum):
    missing = "missing"
    expired = "expired"
    soon = "soon"
    ok = "ok"


@dataclass(frozen=True)
class ExpiryDate:
    date: date
    iso: str
    compact: str   # DDMMYY, year digits as scanned
    display: str   # DD/MM/YYYY


def parse_expiry(yymmdd: str | None) -> ExpiryDate | None:
    """Decode a GS1 ``YYMMDD`` date field.

    Two-digit years always expand to 20YY. Day ``00`` means the last day of
    the month. Out-of-range months and days roll over into the following
    months (``250230`` is 2 March 2025); the compact and display strings keep
    the scanned day and month. Returns ``None`` when the field is not six digits.
    """
    if not yymmdd or len(yymmdd) != 6 or not yymmdd.isdigit():
        return None

    yy = yymmdd[0:2]
    year = 2000 + int(yy)
    month = int(yymmdd[2:4])
    day = int(yymmdd[4:6])

    # Month 00 is December of the previous year, month 13 January of the next.
    first_year, first_month = year + (month - 1) // 12, (month - 1) % 12 + 1
    if day == 0:
        day = calendar.monthrange(first_year, first_month)[1]

    value = date(first_year, first_month, 1) + timedelta(days=day - 1)

    return ExpiryDate(
        date=value,
        iso=value.isoformat(),
        compact=f"{day:02d}{month:02d}{yy}",
        display=f"{day:02d}/{month:02d}/{year}",
    )


def expiry_status(
    expiry: date | None,
    today: date | None = None,
    soon_days: int = EXPIRY_SOON_DAYS,
) -> ExpiryStatus:
    """Bucket an expiry date relative to ``today`` (local calendar day)."""
    if expiry is None:
        return ExpiryStatus.missing

    today = today or date.today()
    diff_days = (expiry - today).days

    if diff_days < 0:
        return ExpiryStatus.expired
    if diff_days <= soon_days:
        return ExpiryStatus.soon
    return ExpiryStatus.ok
