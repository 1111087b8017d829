# /app.py

from expiry_scan import app, db
from expiry_scan.models import AppSetting, CatalogProduct, ScanEntry

@app.shell_context_processor
def make_shell_context():
    """Create a shell context for the application -
    for working with the Expiry Scan database in the Flask shell"""
    return {'db': db, 'ScanEntry': ScanEntry, 'CatalogProduct': CatalogProduct, 'AppSetting': AppSetting}
