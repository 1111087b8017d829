"""GS1 element string decoding into a ``ParsedCode`` record.

Each Application Identifier has its own extractor. Extractors are independent
of each other and of field order: they all read the same AI -> values map
built from the normalized scan.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, replace
from datetime import date
from typing import Any, Callable, Optional

from expiry_scan.barcodes.expiry import (
    EXPIRY_SOON_DAYS,
    ExpiryStatus,
    expiry_status,
    parse_expiry,
)
from expiry_scan.barcodes.normalizer import (
    FIELD_DELIMITER,
    GROUP_SEPARATOR,
    field_map,
    normalize,
)

logger = logging.getLogger(__name__)

_LEADING_DIGITS_RE = re.compile(r"^\d+")
_TEXT_FIELD_END_RE = re.compile(r"[|\x1d]")


@dataclass(frozen=True)
class ParsedCode:
    raw: str = ""
    valid: bool = False
    gtin14: str = ""
    gtin13: str = ""
    expiry_iso: Optional[str] = None
    expiry_compact: str = ""
    expiry_display: str = ""
    expiry_status: ExpiryStatus = ExpiryStatus.missing
    batch: str = ""
    serial: str = ""
    quantity: int = 1

    @property
    def expiry_date(self) -> date | None:
        return date.fromisoformat(self.expiry_iso) if self.expiry_iso else None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["expiry_status"] = self.expiry_status.value
        return data


@dataclass(frozen=True)
class DecodeContext:
    today: date | None = None
    soon_days: int = EXPIRY_SOON_DAYS


Extractor = Callable[[ParsedCode, dict[str, list[str]], DecodeContext], ParsedCode]


def _leading_digits(value: str) -> str:
    m = _LEADING_DIGITS_RE.match(value)
    return m.group(0) if m else ""


def _text_field(value: str) -> str:
    return _TEXT_FIELD_END_RE.split(value, maxsplit=1)[0]


def _first_text(values: list[str]) -> str | None:
    for value in values:
        text = _text_field(value)
        if text:
            return text.replace(FIELD_DELIMITER, "").replace(GROUP_SEPARATOR, "").strip()
    return None


def extract_gtin(parsed: ParsedCode, fields: dict[str, list[str]], ctx: DecodeContext) -> ParsedCode:
    for value in fields.get("01", []):
        digits = _leading_digits(value)
        if len(digits) >= 12:
            gtin14 = digits[:14].zfill(14)
            gtin13 = gtin14[1:] if gtin14.startswith("0") else gtin14
            return replace(parsed, gtin14=gtin14, gtin13=gtin13, valid=True)
    return parsed


def extract_expiry(parsed: ParsedCode, fields: dict[str, list[str]], ctx: DecodeContext) -> ParsedCode:
    for value in fields.get("17", []):
        digits = _leading_digits(value)
        if len(digits) < 6:
            continue
        expiry = parse_expiry(digits[:6])
        if expiry is None:
            return parsed
        return replace(
            parsed,
            expiry_iso=expiry.iso,
            expiry_compact=expiry.compact,
            expiry_display=expiry.display,
            expiry_status=expiry_status(expiry.date, today=ctx.today, soon_days=ctx.soon_days),
        )
    return parsed


def extract_batch(parsed: ParsedCode, fields: dict[str, list[str]], ctx: DecodeContext) -> ParsedCode:
    batch = _first_text(fields.get("10", []))
    return replace(parsed, batch=batch) if batch is not None else parsed


def extract_serial(parsed: ParsedCode, fields: dict[str, list[str]], ctx: DecodeContext) -> ParsedCode:
    serial = _first_text(fields.get("21", []))
    return replace(parsed, serial=serial) if serial is not None else parsed


def extract_quantity(parsed: ParsedCode, fields: dict[str, list[str]], ctx: DecodeContext) -> ParsedCode:
    for value in fields.get("30", []):
        digits = _leading_digits(value)
        if digits:
            return replace(parsed, quantity=int(digits) or 1)
    return parsed


EXTRACTORS: tuple[Extractor, ...] = (
    extract_gtin,
    extract_expiry,
    extract_batch,
    extract_serial,
    extract_quantity,
)


def _apply_extractors(parsed: ParsedCode, text: str, ctx: DecodeContext) -> ParsedCode:
    fields = field_map(text)
    for extractor in EXTRACTORS:
        parsed = extractor(parsed, fields, ctx)
    return parsed


def decode(text: str, raw: str | None = None, today: date | None = None,
           soon_days: int = EXPIRY_SOON_DAYS) -> ParsedCode:
    """Run every extractor over a parenthesized AI string."""
    ctx = DecodeContext(today=today, soon_days=soon_days)
    return _apply_extractors(ParsedCode(raw=raw if raw is not None else text), text, ctx)


def normalize_and_decode(raw: str | None, soon_days: int = EXPIRY_SOON_DAYS,
                         today: date | None = None) -> ParsedCode:
    """Turn a raw scan into a ``ParsedCode``. Never raises."""
    raw_text = raw if isinstance(raw, str) else ""
    try:
        scan = normalize(raw_text)
        base = ParsedCode(
            raw=raw_text,
            valid=scan.identified,
            gtin14=scan.gtin14,
            gtin13=scan.gtin13,
        )
        if scan.done:
            return base

        return _apply_extractors(base, scan.text, DecodeContext(today=today, soon_days=soon_days))
    except Exception:
        logger.exception("Failed to decode scan %r", raw_text)
        return ParsedCode(raw=raw_text)
