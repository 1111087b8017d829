# /__init__.py

# Python Imports
import os
from datetime import datetime
import logging
import subprocess
import toml

# Third party imports
from flask import Flask, Response, jsonify, request, render_template
from flask_sqlalchemy import SQLAlchemy
from pathlib import Path
from dotenv import load_dotenv

# Local imports

# Define the WSGI application object
app = Flask(__name__)

##################################
### Load Flask Run Mode
### Configuration based
### on environment
### (Production, Development)
##################################
load_dotenv("./.env", verbose=True)
app.config.from_object(os.environ.get("APP_MODE", "config.ProdConfig"))


##################################
### Logging Setup
##################################
os.makedirs(app.config["EXPIRY_SCAN_FOLDER"], exist_ok=True)
logging.basicConfig(
    filename=app.config["EXPIRY_SCAN_LOG_FILE"],
    level=logging.INFO,
    format="%(asctime)s %(levelname)s : %(message)s",
)

def log_message(message):
    """Helper function to prefix Log message with the source IP address"""
    source_ip = (
        (request.headers.get("X-Forwarded-For") or request.remote_addr or "-")
        .split(",")[0]
        .strip()
    )
    return f"[IP: {source_ip}] {message}"



@app.route("/view-log")
def view_log():
    """Display the log viewer (in a new tab)."""
    app.logger.info(log_message("Processing /view-log route..."))
    return render_template("view_log.html")


@app.route("/get-log")
def get_log():
    """Get the last x lines of the application log file."""
    app.logger.debug(log_message("Processing /get-log route..."))
    log_file_path = app.config["EXPIRY_SCAN_LOG_FILE"]
    lines_to_show = app.config["LOG_LINES_TO_SHOW"]
    if not os.path.exists(log_file_path):
        return jsonify({"error": "Log file not found"}), 404

    # use subprocess to call the system's tail command
    try:
        if app.config["APP_SERVER_OS"] == "Windows":
            result = subprocess.run(
                ["powershell", "Get-Content", log_file_path, "-Tail", lines_to_show],
                stdout=subprocess.PIPE,
            )
        else:
            result = subprocess.run(
                ["/usr/bin/tail", "-n", lines_to_show, log_file_path], stdout=subprocess.PIPE
            )
        log_content = result.stdout.decode("utf-8")
    except Exception as e:
        app.logger.error(log_message(f"Error reading log file: {e}"))
        return jsonify({"error": "Error reading log file"}), 500

    return Response(log_content, mimetype="text/plain")


##################################
### Database Setup
##################################
app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///" + os.path.join(
    app.config["EXPIRY_SCAN_FOLDER"], app.config["EXPIRY_SCAN_DB_FILE_NAME"]
)
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

app.logger.info(f"Expiry Scan Database URI: {app.config['SQLALCHEMY_DATABASE_URI']}")

db = SQLAlchemy(app)

# Initialize schema (idempotent) and publish the first catalog index.
with app.app_context():
    import expiry_scan.models  # noqa: F401
    from expiry_scan.catalog.store import refresh_catalog_index

    db.create_all()
    refresh_catalog_index()


##################################
### Application version
##################################
PYPROJECT_FILE = Path(__file__).resolve().parents[1] / "pyproject.toml"


def get_version():
    """Get the version of the application."""
    try:
        pyproject_data = toml.load(PYPROJECT_FILE)
    except OSError:
        return "unknown"
    return pyproject_data["project"]["version"]


##################################
### Routing Blueprint Setup
##################################
from expiry_scan.error_pages.handlers import error_pages
from expiry_scan.web_scan.pin import pin_gate
from expiry_scan.web_scan.views import web_scan


app.register_blueprint(error_pages)
app.register_blueprint(pin_gate)
app.register_blueprint(web_scan)



##################################
### Context Processor
### Global template variables
##################################
@app.context_processor
def inject_globals():
    """Inject global variables into all templates."""
    return {
        "version": get_version(),
        "current_year": datetime.now().year,
        "expiry_soon_days": app.config["EXPIRY_SOON_DAYS"],
    }
