from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional

from expiry_scan import db
from expiry_scan.barcodes.expiry import ExpiryStatus
from expiry_scan.catalog.matcher import MatchType

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import (
    Mapped,
    mapped_column,
)

# ----------------------------
# Helpers
# ----------------------------

def utcnow() -> datetime:
    # SQLite has no real TZ; store UTC consistently.
    return datetime.now(timezone.utc)


def _iso(value: datetime | date | None) -> Optional[str]:
    return value.isoformat() if value else None


# ----------------------------
# Models
# ----------------------------

class CatalogProduct(db.Model):
    """
    Master data: one product name per identifier, as imported or learned.
    The autoincrement id keeps catalog insertion order for the matcher index.
    """
    __tablename__ = "catalog_product"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    gtin: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("length(gtin) > 0", name="ck_catalog_gtin_nonempty"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {"gtin": self.gtin, "name": self.name}


class ScanEntry(db.Model):
    """
    One line of scan history. Repeat scans of the same GTIN + batch are merged
    into a single entry by increasing ``qty``.
    """
    __tablename__ = "scan_entry"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scan_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    # Scanner payload as received; useful for replay/debugging.
    raw: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    gtin14: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    gtin13: Mapped[str] = mapped_column(String(32), nullable=False, default="")

    expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expiry_ddmmyy: Mapped[str] = mapped_column(String(6), nullable=False, default="")
    expiry_formatted: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    expiry_status: Mapped[ExpiryStatus] = mapped_column(
        Enum(ExpiryStatus), default=ExpiryStatus.missing, nullable=False, index=True
    )

    batch: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    serial: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    qty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    product_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    match_type: Mapped[MatchType] = mapped_column(Enum(MatchType), default=MatchType.NONE, nullable=False)

    # Store/shelf reference typed in by staff.
    rms: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    __table_args__ = (
        Index("ix_scan_entry_gtin_batch", "gtin14", "batch"),
        CheckConstraint("qty >= 1", name="ck_scan_entry_qty_positive"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "scan_time": _iso(self.scan_time),
            "raw": self.raw,
            "gtin14": self.gtin14,
            "gtin13": self.gtin13,
            "expiry": _iso(self.expiry),
            "expiry_ddmmyy": self.expiry_ddmmyy,
            "expiry_formatted": self.expiry_formatted,
            "expiry_status": self.expiry_status.value,
            "batch": self.batch,
            "serial": self.serial,
            "qty": self.qty,
            "product_name": self.product_name,
            "match_type": self.match_type.value,
            "rms": self.rms,
        }


class AppSetting(db.Model):
    """Small key/value store for user-toggled settings."""
    __tablename__ = "app_setting"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
