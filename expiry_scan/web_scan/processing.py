from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from flask import current_app
from sqlalchemy import select

from expiry_scan import db
from expiry_scan.barcodes.decoder import ParsedCode, normalize_and_decode
from expiry_scan.catalog.matcher import MatchResult, MatchType, match
from expiry_scan.catalog.store import catalog_index, refresh_catalog_index, upsert_product
from expiry_scan.lookup.product_api import lookup_product
from expiry_scan.models import ScanEntry, utcnow


@dataclass
class ScanOutcome:
    parsed: ParsedCode
    match: MatchResult = field(default_factory=MatchResult)
    entry: Optional[ScanEntry] = None
    merged: bool = False

    @property
    def recorded(self) -> bool:
        return self.entry is not None

    def to_dict(self) -> dict:
        return {
            "parsed": self.parsed.to_dict(),
            "match": self.match.to_dict(),
            "entry": self.entry.to_dict() if self.entry is not None else None,
            "merged": self.merged,
        }


@dataclass
class PasteSummary:
    total: int = 0
    valid: int = 0
    invalid: int = 0
    merged: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "valid": self.valid, "invalid": self.invalid, "merged": self.merged}


def _resolve_online(parsed: ParsedCode) -> Optional[MatchResult]:
    found = lookup_product(parsed.gtin14, current_app.config)
    if not found or not found.name:
        return None

    resolved = MatchResult(found.display_name, MatchType.API)
    # Learn the product so the next scan matches locally.
    upsert_product(parsed.gtin14, resolved.product_name)
    db.session.commit()
    refresh_catalog_index()
    return resolved


def find_entry(gtin14: str, batch: str) -> Optional[ScanEntry]:
    return db.session.execute(
        select(ScanEntry)
        .where(ScanEntry.gtin14 == gtin14, ScanEntry.batch == batch)
        .order_by(ScanEntry.id)
        .limit(1)
    ).scalar_one_or_none()


def process_scan(raw: str, lookup_enabled: bool = False) -> ScanOutcome:
    """Decode, match and record one scan.

    Repeat scans of the same GTIN and batch add to the existing history
    entry's quantity instead of creating a new line.
    """
    parsed = normalize_and_decode(raw, soon_days=current_app.config["EXPIRY_SOON_DAYS"])
    if not parsed.valid:
        return ScanOutcome(parsed=parsed)

    result = match(catalog_index.current, parsed.gtin14, parsed.gtin13)
    if result.match_type is MatchType.NONE and lookup_enabled:
        result = _resolve_online(parsed) or result

    existing = find_entry(parsed.gtin14, parsed.batch) if parsed.batch else None
    if existing is not None:
        existing.qty = (existing.qty or 1) + parsed.quantity
        existing.scan_time = utcnow()
        db.session.commit()
        return ScanOutcome(parsed=parsed, match=result, entry=existing, merged=True)

    entry = ScanEntry(
        raw=raw,
        gtin14=parsed.gtin14,
        gtin13=parsed.gtin13,
        expiry=parsed.expiry_date,
        expiry_ddmmyy=parsed.expiry_compact,
        expiry_formatted=parsed.expiry_display,
        expiry_status=parsed.expiry_status,
        batch=parsed.batch,
        serial=parsed.serial,
        qty=parsed.quantity,
        product_name=result.product_name,
        match_type=result.match_type,
    )
    db.session.add(entry)
    db.session.commit()
    return ScanOutcome(parsed=parsed, match=result, entry=entry)


def process_paste(text: str, lookup_enabled: bool = False) -> PasteSummary:
    summary = PasteSummary()
    for line in re.split(r"\r?\n", text or ""):
        line = line.strip()
        if not line:
            continue
        summary.total += 1
        outcome = process_scan(line, lookup_enabled=lookup_enabled)
        if not outcome.parsed.valid:
            summary.invalid += 1
            continue
        summary.valid += 1
        if outcome.merged:
            summary.merged += 1
    return summary
