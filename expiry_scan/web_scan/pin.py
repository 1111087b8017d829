from __future__ import annotations

import hmac
import time
from functools import wraps

from flask import Blueprint, current_app, jsonify, request, session

from expiry_scan import log_message

# blueprint router configuration
pin_gate = Blueprint("pin_gate", __name__)

_SESSION_KEY = "pin_verified_at"


def pin_is_fresh() -> bool:
    """True when no PIN is configured or it was entered within the timeout."""
    if not current_app.config.get("PIN"):
        return True
    verified_at = session.get(_SESSION_KEY)
    if not isinstance(verified_at, (int, float)):
        return False
    elapsed_minutes = (time.time() - verified_at) / 60
    return elapsed_minutes < current_app.config["PIN_TIMEOUT_MINUTES"]


def pin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not pin_is_fresh():
            return jsonify({"ok": False, "message": "PIN required"}), 401
        return view(*args, **kwargs)

    return wrapped


@pin_gate.route("/api/pin", methods=["POST"])
def verify_pin():
    payload = request.get_json(silent=True) or {}
    entered = str(payload.get("pin") or request.form.get("pin") or "")
    expected = current_app.config.get("PIN") or ""

    if expected and not hmac.compare_digest(entered, expected):
        current_app.logger.warning(log_message("Incorrect PIN entered"))
        return jsonify({"ok": False, "message": "Incorrect PIN"}), 401

    session[_SESSION_KEY] = time.time()
    return jsonify({"ok": True, "timeout_minutes": current_app.config["PIN_TIMEOUT_MINUTES"]}), 200


@pin_gate.route("/api/pin", methods=["DELETE"])
def lock():
    session.pop(_SESSION_KEY, None)
    return jsonify({"ok": True}), 200
