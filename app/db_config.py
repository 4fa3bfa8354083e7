"""Database configuration and setup for different environments."""
import os


def get_database_engine_options(timeout_seconds=30):
    """Get database engine options for PostgreSQL connections.

    Args:
        timeout_seconds: Upper bound for connecting and for any single statement
    """
    from sqlalchemy.pool import QueuePool

    return {
        "pool_pre_ping": True,        # Detect and refresh dead connections before use
        "pool_recycle": 280,          # Recycle connections before the host's idle timeout (~5 min)
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": timeout_seconds,
        "pool_reset_on_return": "commit",
        "poolclass": QueuePool,
        "connect_args": {
            "sslmode": "require",
            "connect_timeout": min(timeout_seconds, 10),
            "application_name": "phase_scheduler",
            "options": f"-c statement_timeout={timeout_seconds * 1000}"
        },
    }


def get_sqlite_engine_options(timeout_seconds=30):
    """SQLite only needs a lock wait bound."""
    return {"connect_args": {"timeout": timeout_seconds}}


def get_local_database_config(timeout_seconds=30):
    """Get database configuration for local development.

    Returns:
        tuple: (database_uri, engine_options)
    """
    database_uri = os.environ.get("LOCAL_DATABASE_URL") or "sqlite:///schedule.sqlite"
    if database_uri.startswith("sqlite"):
        return database_uri, get_sqlite_engine_options(timeout_seconds)
    return database_uri, get_database_engine_options(timeout_seconds)


def get_sandbox_database_config(timeout_seconds=30):
    """Get database configuration for sandbox/staging environment.

    Returns:
        tuple: (database_uri, engine_options)

    Raises:
        ValueError: If database URL is not configured
    """
    database_url = os.environ.get("SANDBOX_DATABASE_URL")
    if not database_url:
        raise ValueError("SANDBOX_DATABASE_URL must be set for sandbox environment")

    return _normalize_url(database_url), get_database_engine_options(timeout_seconds)


def get_production_database_config(timeout_seconds=30):
    """Get database configuration for production environment.

    Returns:
        tuple: (database_uri, engine_options)

    Raises:
        ValueError: If database URL is not configured
    """
    database_url = os.environ.get("PRODUCTION_DATABASE_URL") or os.environ.get("DATABASE_URL")
    if not database_url:
        raise ValueError("PRODUCTION_DATABASE_URL or DATABASE_URL must be set for production environment")

    return _normalize_url(database_url), get_database_engine_options(timeout_seconds)


def get_testing_database_config(timeout_seconds=30):
    """In-memory SQLite for the test suite."""
    return "sqlite:///:memory:", None


def _normalize_url(url):
    # SQLAlchemy expects postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def get_database_config(environment=None, timeout_seconds=30):
    """Get database configuration based on environment.

    Args:
        environment: Environment name ('local', 'sandbox', 'production', 'testing')
                    If None, will be determined from ENVIRONMENT or FLASK_ENV env vars.
        timeout_seconds: Storage timeout applied to connections and statements

    Returns:
        tuple: (database_uri, engine_options)
    """
    if environment is None:
        environment = os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")
    environment = environment.lower()

    if environment in ["local", "development", "dev"]:
        return get_local_database_config(timeout_seconds)
    elif environment in ["sandbox", "staging", "stage"]:
        return get_sandbox_database_config(timeout_seconds)
    elif environment in ["production", "prod"]:
        return get_production_database_config(timeout_seconds)
    elif environment in ["testing", "test"]:
        return get_testing_database_config(timeout_seconds)
    else:
        # Default to local for safety
        return get_local_database_config(timeout_seconds)


def configure_database(app):
    """Configure database settings for the Flask app.

    This function sets SQLALCHEMY_DATABASE_URI and SQLALCHEMY_ENGINE_OPTIONS
    on the app config based on the current environment.

    Args:
        app: Flask application instance
    """
    environment = app.config.get("ENV") or os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")
    timeout_seconds = app.config.get("STORAGE_TIMEOUT_SECONDS", 30)

    database_uri, engine_options = get_database_config(environment, timeout_seconds)

    app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SQLALCHEMY_ECHO"] = False  # Set to True for SQL query debugging

    if engine_options:
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options
