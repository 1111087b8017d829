# config.py
"""Pharmacy Expiry Scan - Flask Application configuration."""

# Python imports
from os import environ, path

# Third-party imports
from dotenv import load_dotenv

# Local imports

# Load environment variables from .env file
basedir = path.abspath(path.dirname(__file__))
load_dotenv(path.join(basedir, ".env"))


def _env_flag(name, default):
    value = environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Base config."""

    SECRET_KEY = environ.get("SECRET_KEY")

    # Default persistence location for local dev.
    # Docker sets EXPIRY_SCAN_FOLDER=/data explicitly, so these defaults won't interfere.
    EXPIRY_SCAN_FOLDER = environ.get("EXPIRY_SCAN_FOLDER") or path.join(basedir, "expiry_data")
    EXPIRY_SCAN_DB_FILE_NAME = environ.get("EXPIRY_SCAN_DB_FILE_NAME") or "expiry_scan.sqlite"
    EXPIRY_SCAN_LOG_FILE = (
        environ.get("EXPIRY_SCAN_LOG_FILE")
        or path.join(EXPIRY_SCAN_FOLDER, "expiry_scan.log")
    )

    APP_SERVER_OS = environ.get("APP_SERVER_OS") or "Linux"

    # Expiry buckets: <0 days expired, <= EXPIRY_SOON_DAYS soon, else ok.
    EXPIRY_SOON_DAYS = int(environ.get("EXPIRY_SOON_DAYS") or 90)

    # PIN gate for editing history and master data. Empty disables the gate.
    PIN = environ.get("PIN") or ""
    PIN_TIMEOUT_MINUTES = int(environ.get("PIN_TIMEOUT_MINUTES") or 5)

    MAX_RECENT_SCANS = int(environ.get("MAX_RECENT_SCANS") or 10)

    # Online product lookup for codes missing from the master data
    API_LOOKUP_ENABLED = _env_flag("API_LOOKUP_ENABLED", True)
    LOOKUP_TIMEOUT_SECONDS = int(environ.get("LOOKUP_TIMEOUT_SECONDS") or 8)
    OPEN_FDA_URL = environ.get("OPEN_FDA_URL") or "https://api.fda.gov/drug/ndc.json"
    DAILYMED_URL = (
        environ.get("DAILYMED_URL")
        or "https://dailymed.nlm.nih.gov/dailymed/services/v2/spls.json"
    )
    OPEN_FOOD_FACTS_URL = (
        environ.get("OPEN_FOOD_FACTS_URL")
        or "https://world.openfoodfacts.org/api/v0/product/"
    )

class ProdConfig(Config):
    """Production System Configuration"""

    FLASK_ENV = "production"
    DEBUG = False
    TESTING = False
    LOG_LINES_TO_SHOW = "164"



class DevConfig(Config):
    """Development System Configuration"""

    FLASK_ENV = "development"
    DEBUG = True
    TESTING = True
    LOG_LINES_TO_SHOW = "164"
