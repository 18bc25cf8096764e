import logging
import time
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from app.config import settings
from app.models.database import Base, _normalize_database_url, engine
from app.models import FriendRequest, Friendship, Order, PaymentConfirmation, User  # noqa: F401 - register models

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _ping() -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def wait_for_db(retries: int, retry_delay_seconds: int) -> None:
    """Block until the database answers ``SELECT 1``.

    Raises RuntimeError once ``retries`` attempts have failed.
    """
    attempts = max(retries, 1)
    for attempt in range(1, attempts + 1):
        try:
            _ping()
        except OperationalError as exc:
            if attempt == attempts:
                raise RuntimeError(
                    f"Database is unreachable after {attempts} attempts. "
                    "Check DATABASE_URL and ensure the DB server is running."
                ) from exc
            logger.warning("Database not ready (attempt %s/%s): %s", attempt, attempts, exc)
            time.sleep(retry_delay_seconds)
        else:
            logger.info("Database connection established on attempt %s", attempt)
            return


def init_db() -> None:
    """Prepare the schema: plain create_all on SQLite, Alembic everywhere else."""
    wait_for_db(
        retries=settings.DB_CONNECT_RETRIES,
        retry_delay_seconds=settings.DB_CONNECT_RETRY_DELAY_SECONDS,
    )
    if settings.DATABASE_URL.startswith("sqlite"):
        logger.info("SQLite database, creating tables without migrations")
        Base.metadata.create_all(bind=engine)
        return

    run_migrations()


def _alembic_config(database_url: str):
    from alembic.config import Config

    alembic_ini = PROJECT_ROOT / "alembic.ini"
    script_location = PROJECT_ROOT / "alembic"
    if not alembic_ini.exists() or not script_location.exists():
        raise RuntimeError("Alembic configuration is missing (alembic.ini or alembic/ directory not found).")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(script_location))
    config.set_main_option("sqlalchemy.url", _normalize_database_url(database_url))
    # alembic.ini logging sections are for the CLI only
    config.attributes["configure_logger"] = False
    return config


def run_migrations() -> None:
    """Apply Alembic migrations to the latest revision."""
    from alembic import command

    command.upgrade(_alembic_config(settings.DATABASE_URL), "head")
    logger.info("Database migrations applied")
