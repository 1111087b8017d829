from __future__ import annotations

import csv
import io
import json
from datetime import date, datetime, timezone

from flask import Blueprint, Response, current_app, jsonify, render_template, request
from sqlalchemy import or_, select

from expiry_scan import db, get_version, log_message
from expiry_scan.barcodes.expiry import ExpiryStatus
from expiry_scan.catalog.master_file import CatalogEntry, MasterFileError, parse_master_file
from expiry_scan.catalog.matcher import MatchType, match
from expiry_scan.catalog.store import (
    catalog_index,
    catalog_size,
    load_catalog,
    refresh_catalog_index,
    replace_catalog,
    upsert_product,
)
from expiry_scan.models import AppSetting, ScanEntry, utcnow
from expiry_scan.web_scan.forms import parse_history_edit, parse_quantity, validate_scan_input
from expiry_scan.web_scan.pin import pin_required
from expiry_scan.web_scan.processing import process_paste, process_scan

# blueprint router configuration
web_scan = Blueprint("web_scan", __name__)

#  Global constants
EXPORT_HEADERS = ["RMS", "BARCODE (GTIN)", "DESCRIPTION", "EXPIRY (DDMMYY)", "BATCH", "QUANTITY"]
BACKUP_VERSION = 2
BACKUP_APP_NAME = "PharmaExpiryScan"
_HISTORY_PAGE_LIMIT = 100
_STATUS_FILTERS = {"all"} | {status.value for status in ExpiryStatus}
_API_LOOKUP_SETTING = "api_lookup_enabled"


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _request_data() -> dict:
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return payload
    return request.form.to_dict()


def _error(message: str, status: int = 400):
    return jsonify({"ok": False, "message": message}), status


def get_setting(key: str, default=None):
    setting = db.session.get(AppSetting, key)
    return default if setting is None or setting.value is None else setting.value


def set_setting(key: str, value) -> None:
    setting = db.session.get(AppSetting, key)
    if setting is None:
        db.session.add(AppSetting(key=key, value=value))
    else:
        setting.value = value


def api_lookup_enabled() -> bool:
    return bool(get_setting(_API_LOOKUP_SETTING, current_app.config["API_LOOKUP_ENABLED"]))


def _history_query(query: str = "", status: str = "all"):
    stmt = select(ScanEntry).order_by(ScanEntry.scan_time.desc(), ScanEntry.id.desc())
    if status != "all":
        stmt = stmt.where(ScanEntry.expiry_status == ExpiryStatus(status))
    if query:
        stmt = stmt.where(
            or_(
                ScanEntry.gtin14.contains(query, autoescape=True),
                ScanEntry.gtin13.contains(query, autoescape=True),
                ScanEntry.product_name.icontains(query, autoescape=True),
                ScanEntry.batch.icontains(query, autoescape=True),
                ScanEntry.rms.icontains(query, autoescape=True),
            )
        )
    return stmt


def _all_history() -> list[ScanEntry]:
    return list(db.session.execute(_history_query()).scalars())


def _export_rows(entries: list[ScanEntry]) -> list[list[str]]:
    return [
        [
            entry.rms or "",
            entry.gtin14 or entry.gtin13 or "",
            entry.product_name or "",
            entry.expiry_ddmmyy or "",
            entry.batch or "",
            str(entry.qty or 1),
        ]
        for entry in entries
    ]


def _download(content: str, extension: str, mimetype: str) -> Response:
    filename = f"expiry-export-{date.today():%Y%m%d}.{extension}"
    return Response(
        content,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _parse_datetime(value) -> datetime:
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return utcnow()


def _parse_date(value) -> date | None:
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _entry_from_backup(item: dict) -> ScanEntry:
    try:
        status = ExpiryStatus(item.get("expiry_status") or ExpiryStatus.missing.value)
    except ValueError:
        status = ExpiryStatus.missing
    try:
        match_type = MatchType(item.get("match_type") or MatchType.NONE.value)
    except ValueError:
        match_type = MatchType.NONE

    return ScanEntry(
        scan_time=_parse_datetime(item.get("scan_time")),
        raw=item.get("raw"),
        gtin14=str(item.get("gtin14") or ""),
        gtin13=str(item.get("gtin13") or ""),
        expiry=_parse_date(item.get("expiry")),
        expiry_ddmmyy=str(item.get("expiry_ddmmyy") or ""),
        expiry_formatted=str(item.get("expiry_formatted") or ""),
        expiry_status=status,
        batch=str(item.get("batch") or ""),
        serial=str(item.get("serial") or ""),
        qty=parse_quantity(item.get("qty")),
        product_name=str(item.get("product_name") or ""),
        match_type=match_type,
        rms=str(item.get("rms") or ""),
    )


@web_scan.route("/", methods=["GET"])
def index():
    """Route to display the home page of the application"""

    limit = current_app.config["MAX_RECENT_SCANS"]
    recent = list(db.session.execute(_history_query().limit(limit)).scalars())
    return render_template(
        "index.html",
        recent=recent,
        history_count=db.session.query(ScanEntry).count(),
        catalog_count=catalog_size(),
    )


@web_scan.route("/api/scan", methods=["POST"])
def scan():
    validation = validate_scan_input(_request_data().get("barcode"))
    if not validation.ok:
        return _error(validation.error or "Invalid barcode")

    try:
        outcome = process_scan(validation.value or "", lookup_enabled=api_lookup_enabled())
    except Exception:
        db.session.rollback()
        current_app.logger.exception(log_message("Failed to record scan"))
        return _error("Failed to record scan", 500)

    if not outcome.parsed.valid:
        current_app.logger.info(log_message(f"Invalid barcode format: {validation.value!r}"))
        return jsonify({"ok": False, "message": "Invalid barcode format", **outcome.to_dict()}), 200

    if outcome.merged:
        message = f"+{outcome.parsed.quantity} qty (total: {outcome.entry.qty})"
    else:
        message = f"Scanned: {outcome.parsed.gtin13}"
    current_app.logger.info(
        log_message(f"{message} [{outcome.match.match_type.value}] {outcome.match.product_name}")
    )
    return jsonify({"ok": True, "message": message, **outcome.to_dict()}), 200


@web_scan.route("/api/paste", methods=["POST"])
def paste():
    text = str(_request_data().get("text") or "")
    if not text.strip():
        return _error("No data to process")

    try:
        summary = process_paste(text, lookup_enabled=api_lookup_enabled())
    except Exception:
        db.session.rollback()
        current_app.logger.exception(log_message("Failed to process pasted barcodes"))
        return _error("Failed to process pasted barcodes", 500)

    current_app.logger.info(log_message(f"Processed {summary.valid}/{summary.total} pasted barcodes"))
    return jsonify({"ok": True, **summary.to_dict()}), 200


@web_scan.route("/api/match", methods=["GET"])
def match_code():
    result = match(catalog_index.current, request.args.get("gtin14"), request.args.get("gtin13"))
    return jsonify(result.to_dict()), 200


@web_scan.route("/api/history", methods=["GET"])
def history():
    query = (request.args.get("q") or "").strip()
    status = (request.args.get("status") or "all").strip().lower()
    if status not in _STATUS_FILTERS:
        return _error(f"Unknown status filter: {status}")

    entries = db.session.execute(_history_query(query, status).limit(_HISTORY_PAGE_LIMIT)).scalars()
    return jsonify({"items": [entry.to_dict() for entry in entries]}), 200


@web_scan.route("/api/history/<int:entry_id>", methods=["PUT", "POST"])
@pin_required
def history_edit(entry_id: int):
    entry = db.session.get(ScanEntry, entry_id)
    if entry is None:
        return _error("Entry not found", 404)

    edit = parse_history_edit(_request_data())
    entry.product_name = edit.product_name
    entry.qty = edit.qty
    entry.rms = edit.rms

    # A corrected name also teaches the master data.
    learned = bool(edit.product_name and entry.gtin14)
    if learned:
        upsert_product(entry.gtin14, edit.product_name)
    db.session.commit()
    if learned:
        refresh_catalog_index()

    current_app.logger.info(log_message(f"History entry {entry_id} updated"))
    return jsonify({"ok": True, "entry": entry.to_dict()}), 200


@web_scan.route("/api/history/<int:entry_id>", methods=["DELETE"])
@pin_required
def history_delete(entry_id: int):
    entry = db.session.get(ScanEntry, entry_id)
    if entry is None:
        return _error("Entry not found", 404)
    db.session.delete(entry)
    db.session.commit()
    current_app.logger.info(log_message(f"History entry {entry_id} deleted"))
    return jsonify({"ok": True}), 200


@web_scan.route("/api/history/clear", methods=["POST"])
@pin_required
def history_clear():
    deleted = db.session.query(ScanEntry).delete()
    db.session.commit()
    current_app.logger.info(log_message(f"History cleared ({deleted} entries)"))
    return jsonify({"ok": True, "deleted": deleted}), 200


@web_scan.route("/api/export.tsv", methods=["GET"])
def export_tsv():
    entries = _all_history()
    if not entries:
        return _error("No data to export", 404)

    lines = ["\t".join(EXPORT_HEADERS)] + ["\t".join(row) for row in _export_rows(entries)]
    return _download("\n".join(lines), "tsv", "text/tab-separated-values")


@web_scan.route("/api/export.csv", methods=["GET"])
def export_csv():
    entries = _all_history()
    if not entries:
        return _error("No data to export", 404)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    writer.writerows(_export_rows(entries))
    return _download(buffer.getvalue().rstrip("\n"), "csv", "text/csv")


@web_scan.route("/api/backup", methods=["GET"])
def backup():
    catalog = load_catalog()
    payload = {
        "version": BACKUP_VERSION,
        "app": BACKUP_APP_NAME,
        "exportDate": _utc_iso(),
        "history": [entry.to_dict() for entry in _all_history()],
        "master": [{"gtin": gtin, "name": name} for gtin, name in catalog.items()],
        "settings": {"apiLookupEnabled": api_lookup_enabled()},
    }
    filename = f"expiry-backup-{date.today():%Y%m%d}.json"
    return Response(
        json.dumps(payload, indent=2),
        mimetype="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@web_scan.route("/api/restore", methods=["POST"])
@pin_required
def restore():
    upload = request.files.get("file")
    try:
        document = json.loads(upload.read().decode("utf-8")) if upload else request.get_json(force=True, silent=True)
    except (ValueError, UnicodeDecodeError):
        document = None

    if not isinstance(document, dict) or ("history" not in document and "master" not in document):
        return _error("Invalid backup file")

    history_items = document.get("history")
    master_items = document.get("master")
    try:
        if isinstance(history_items, list):
            db.session.query(ScanEntry).delete()
            for item in history_items:
                if isinstance(item, dict):
                    db.session.add(_entry_from_backup(item))

        if isinstance(master_items, list):
            products = [
                CatalogEntry(gtin=str(m.get("gtin") or ""), name=str(m.get("name") or ""))
                for m in master_items
                if isinstance(m, dict)
            ]
            replace_catalog(products, append=False, commit=False)

        settings = document.get("settings")
        if isinstance(settings, dict) and "apiLookupEnabled" in settings:
            set_setting(_API_LOOKUP_SETTING, bool(settings["apiLookupEnabled"]))

        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception(log_message("Restore failed"))
        return _error("Invalid backup file")

    refresh_catalog_index()

    restored_history = len(history_items) if isinstance(history_items, list) else 0
    restored_master = len(master_items) if isinstance(master_items, list) else 0
    current_app.logger.info(log_message(f"Restored {restored_history} scans, {restored_master} products"))
    return jsonify({"ok": True, "history": restored_history, "master": restored_master}), 200


@web_scan.route("/api/master", methods=["GET"])
def master_list():
    catalog = load_catalog()
    return jsonify({"count": len(catalog), "items": [{"gtin": g, "name": n} for g, n in catalog.items()]}), 200


@web_scan.route("/api/master", methods=["POST"])
@pin_required
def master_upload():
    upload = request.files.get("file")
    if upload is None:
        return _error("No file uploaded")

    append = (request.form.get("append") or "").lower() in {"1", "true", "yes", "on"}
    try:
        content = upload.read().decode("utf-8-sig")
        products = parse_master_file(content)
    except UnicodeDecodeError:
        return _error("File is not UTF-8 text")
    except MasterFileError as e:
        current_app.logger.warning(log_message(f"Master import rejected ({upload.filename}): {e}"))
        return _error(str(e))

    try:
        count = replace_catalog(products, append=append)
    except Exception:
        db.session.rollback()
        current_app.logger.exception(log_message("Failed to store master data"))
        return _error("Failed to store master data", 500)

    current_app.logger.info(log_message(f"Loaded {count} products from {upload.filename}"))
    return jsonify({"ok": True, "loaded": count, "catalog_count": catalog_size()}), 200


@web_scan.route("/api/settings", methods=["GET"])
def settings_view():
    return jsonify({"api_lookup_enabled": api_lookup_enabled()}), 200


@web_scan.route("/api/settings", methods=["POST"])
def settings_update():
    data = _request_data()
    if "api_lookup_enabled" in data:
        value = data["api_lookup_enabled"]
        if isinstance(value, str):
            value = value.lower() in {"1", "true", "yes", "on"}
        set_setting(_API_LOOKUP_SETTING, bool(value))
        db.session.commit()
    return jsonify({"api_lookup_enabled": api_lookup_enabled()}), 200


@web_scan.route("/api/stats", methods=["GET"])
def stats():
    return jsonify(
        {
            "catalog_count": catalog_size(),
            "history_count": db.session.query(ScanEntry).count(),
            "index_version": catalog_index.version,
            "version": get_version(),
        }
    ), 200
