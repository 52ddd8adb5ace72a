import logging
from datetime import datetime, timezone

from sqlalchemy import create_engine, event, Engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.exc import OperationalError

from recipe_api.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    if settings.is_sqlite:
        # Pipelines touch the database from executor threads as well as the event loop
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 5,
        "max_overflow": 10,
    }


# Create SQLAlchemy engine with connection pooling
try:
    engine: Engine = create_engine(
        settings.database_url,
        echo=False,  # Set to True for SQL query debugging
        **_engine_options()
    )
    logger.info("Database engine created successfully")
except Exception as e:
    logger.critical(f"Failed to create database engine: {e}", exc_info=True)
    raise


if settings.is_sqlite:
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Session factory; objects stay readable after commit so background tasks can hand them back
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine
)

# Declarative base for all models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp used for every created_at/updated_at column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db():
    """
    Database session dependency for FastAPI routes.
    Yields a database session and ensures it's closed after the request.

    Usage:
        @app.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db session here
            pass
    """
    db = SessionLocal()
    try:
        logger.debug("Database session created")
        yield db
    except OperationalError as e:
        logger.error(f"Database operational error: {e}", exc_info=True)
        db.rollback()
        raise
    except Exception as e:
        logger.error(f"Database error: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        logger.debug("Database session closed")
        db.close()


def init_db():
    """
    Initialize database by creating all tables that do not exist yet.
    """
    # Import models so they register on Base.metadata
    import recipe_api.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def check_database_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is successful, False otherwise.
    """
    try:
        with engine.connect() as connection:
            connection.execute(text('SELECT 1'))
        logger.info("Database connection health check passed")
        return True
    except Exception as e:
        logger.error(f"Database connection health check failed: {e}", exc_info=True)
        return False
