from __future__ import annotations

from dataclasses import dataclass

MAX_SCAN_LENGTH = 512


@dataclass(frozen=True)
class ScanInputResult:
	ok: bool
	value: str | None = None
	error: str | None = None


@dataclass(frozen=True)
class HistoryEdit:
	product_name: str
	qty: int
	rms: str


def validate_scan_input(raw: str | None) -> ScanInputResult:
	# Keep the group separator: it terminates variable-length GS1 fields.
	value = (raw or "").strip(" \t\r\n")
	if not value:
		return ScanInputResult(ok=False, error="Enter or scan a barcode.")
	if len(value) > MAX_SCAN_LENGTH:
		return ScanInputResult(ok=False, error=f"Barcode is longer than {MAX_SCAN_LENGTH} characters.")
	return ScanInputResult(ok=True, value=value)


def parse_quantity(raw) -> int:
	try:
		qty = int(str(raw).strip())
	except (TypeError, ValueError):
		return 1
	return qty if qty >= 1 else 1


def parse_history_edit(data: dict) -> HistoryEdit:
	return HistoryEdit(
		product_name=str(data.get("product_name") or "").strip(),
		qty=parse_quantity(data.get("qty")),
		rms=str(data.get("rms") or "").strip(),
	)
