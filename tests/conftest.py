import os
import sys
import tempfile
from pathlib import Path

import pytest


# Ensure the project root (repo folder) is importable when running pytest under uv.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


TEST_PIN = "2468"

# The application object is a global in expiry_scan/__init__.py and reads its
# configuration at import time, which happens as soon as any test module
# imports from the package. Point it at a throwaway folder before that.
_DATA_DIR = tempfile.mkdtemp(prefix="expiry_scan_data_")

os.environ["APP_MODE"] = "config.DevConfig"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_SERVER_OS"] = "Linux"

# Force temp persistence so tests never touch the developer's real data.
os.environ["EXPIRY_SCAN_FOLDER"] = _DATA_DIR
os.environ["EXPIRY_SCAN_DB_FILE_NAME"] = "test.sqlite"
os.environ["EXPIRY_SCAN_LOG_FILE"] = str(Path(_DATA_DIR) / "test.log")

os.environ["PIN"] = TEST_PIN
os.environ["EXPIRY_SOON_DAYS"] = "90"
# Never reach out to the real product APIs from tests.
os.environ["API_LOOKUP_ENABLED"] = "0"


@pytest.fixture(scope="session")
def app():
    import expiry_scan  # noqa: E402

    return expiry_scan.app


@pytest.fixture()
def db(app):
    """Fresh tables and an empty catalog index for each test."""
    import expiry_scan  # noqa: E402
    from expiry_scan.catalog.store import refresh_catalog_index

    with app.app_context():
        expiry_scan.db.drop_all()
        expiry_scan.db.create_all()
        refresh_catalog_index()
        yield expiry_scan.db
        expiry_scan.db.session.remove()


@pytest.fixture()
def client(app, db):
    return app.test_client()


@pytest.fixture()
def unlocked_client(client):
    resp = client.post("/api/pin", json={"pin": TEST_PIN})
    assert resp.status_code == 200
    return client
