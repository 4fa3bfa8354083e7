import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration class with common settings."""
    # Phase scheduling
    DEFAULT_PHASE_TEMPLATE = os.environ.get("DEFAULT_PHASE_TEMPLATE", "Barndominium")
    DEFAULT_PHASE_STATUS = "Planned"

    # Upper bound for any single database round-trip (connect + statement)
    STORAGE_TIMEOUT_SECONDS = int(os.environ.get("STORAGE_TIMEOUT_SECONDS", "30"))

    # Holiday calendar seeding
    HOLIDAY_SEED_YEARS_AHEAD = int(os.environ.get("HOLIDAY_SEED_YEARS_AHEAD", "2"))
    ENABLE_HOLIDAY_SEED_JOB = _env_bool("ENABLE_HOLIDAY_SEED_JOB", True)

    # Customer schedule projection skips weekends only unless this is set
    SYNC_SCHEDULE_USES_HOLIDAYS = _env_bool("SYNC_SCHEDULE_USES_HOLIDAYS", False)

    # Global exceptions
    DEFAULT_EXCEPTION_TYPE = "weather"

    # CORS configuration
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Log file (None logs to stdout only)
    LOG_FILE = os.environ.get("LOG_FILE", "logs/app.log")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class LocalConfig(Config):
    """Configuration for local development."""
    ENV = "local"
    DEBUG = True


class SandboxConfig(Config):
    """Configuration for sandbox/staging environment."""
    ENV = "sandbox"
    DEBUG = False


class ProductionConfig(Config):
    """Configuration for production environment."""
    ENV = "production"
    DEBUG = False


class TestingConfig(Config):
    """Configuration for the test suite (in-memory SQLite, no background jobs)."""
    ENV = "testing"
    DEBUG = False
    TESTING = True
    ENABLE_HOLIDAY_SEED_JOB = False
    LOG_FILE = None


def get_config():
    """Get the appropriate configuration class based on environment variable.

    Environment is determined by FLASK_ENV or ENVIRONMENT variable:
    - 'local' or 'development' -> LocalConfig
    - 'sandbox' or 'staging' -> SandboxConfig
    - 'production' or 'prod' -> ProductionConfig
    - 'testing' or 'test' -> TestingConfig

    Defaults to LocalConfig if not set.
    """
    env = (os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")).lower()

    if env in ["local", "development", "dev"]:
        return LocalConfig
    elif env in ["sandbox", "staging", "stage"]:
        return SandboxConfig
    elif env in ["production", "prod"]:
        return ProductionConfig
    elif env in ["testing", "test"]:
        return TestingConfig
    else:
        # Default to local for safety
        return LocalConfig
