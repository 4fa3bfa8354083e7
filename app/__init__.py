import os
from datetime import date, datetime

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

# database imports
from app.models import db

# scheduler imports
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.executors.pool import ThreadPoolExecutor
from app.logging_config import configure_logging, get_logger

import atexit

logger = get_logger(__name__)


def seed_upcoming_holidays(app):
    """Seed default holidays for the current year and the configured years ahead."""
    from app.scheduling.factory import build_services

    years_ahead = app.config.get("HOLIDAY_SEED_YEARS_AHEAD", 2)
    this_year = date.today().year
    years = list(range(this_year, this_year + years_ahead + 1))
    with app.app_context():
        inserted = build_services(app.config).holidays.seed_default_holidays(years)
    logger.info("Holiday seed job finished", years=years, inserted=inserted)
    return inserted


def init_scheduler(app):
    """Initialize the background scheduler (daily holiday calendar seeding)."""

    if not app.config.get("ENABLE_HOLIDAY_SEED_JOB", True):
        logger.info("Holiday seed job disabled")
        return None

    # --- Prevent scheduler duplication in multi-worker environments ---
    # Only run the scheduler on one instance
    if os.environ.get("WERKZEUG_RUN_MAIN") != "true" and not os.environ.get("RUN_SCHEDULER"):
        logger.info("Skipping scheduler startup on this worker")
        return None

    executors = {"default": ThreadPoolExecutor(1)}
    scheduler = BackgroundScheduler(executors=executors)

    scheduler.add_job(
        func=lambda: seed_upcoming_holidays(app),
        trigger="interval",
        hours=24,
        id="seed_holidays",
        replace_existing=True,
        next_run_time=datetime.now(),  # seed once at startup, then daily
    )

    scheduler.start()
    atexit.register(lambda: scheduler.shutdown(wait=False))

    logger.info("Scheduler started (holiday seeding)")
    return scheduler


def create_app(config_class=None):
    # Import config after dotenv is loaded
    from app.config import get_config
    from app.db_config import configure_database
    from app.api import api_bp

    # Get the appropriate config class based on environment
    config_class = config_class or get_config()

    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(
        log_level=app.config.get("LOG_LEVEL", "INFO"),
        log_file=app.config.get("LOG_FILE"),
    )

    # Configure database separately
    configure_database(app)

    logger.info(f"Starting application in {config_class.ENV} environment")
    logger.info(f"Database URI: {app.config.get('SQLALCHEMY_DATABASE_URI', 'Not set')[:50]}...")

    # Get allowed origins from environment variable
    allowed_origins = app.config.get("CORS_ORIGINS", "*")
    if allowed_origins != "*":
        # Parse comma-separated list if provided
        allowed_origins = [origin.strip() for origin in allowed_origins.split(",")]

    CORS(app,
         resources={r"/*": {"origins": allowed_origins}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"])

    db.init_app(app)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "environment": config_class.ENV}), 200

    app.register_blueprint(api_bp, url_prefix="/api")

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Return JSON for every unhandled error"""
        if isinstance(e, HTTPException):
            status_code = e.code
        else:
            status_code = 500
            logger.error("Unhandled exception", error=str(e), exc_info=True)

        response = jsonify({
            "error": str(e),
            "message": "An error occurred processing your request"
        })
        response.status_code = status_code
        return response

    # Initialize scheduler safely
    try:
        init_scheduler(app)
    except Exception as e:
        logger.error("Failed to start scheduler", error=str(e))

    return app
