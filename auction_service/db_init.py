"""Bootstrap of the lots table.

The caller passes the engine and retry policy in; nothing here reads the
environment. SQLite gets the table straight from the model, every other
backend is brought to the head Alembic revision over the same engine.
"""

import logging
import time
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from auction_service.models import Lot

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _describe(engine: Engine) -> str:
    return engine.url.render_as_string(hide_password=True)


def wait_for_db(engine: Engine, retries: int, retry_delay_seconds: float) -> None:
    """Block until the lot store answers ``SELECT 1`` or the retries run out."""
    attempts = max(retries, 1)
    for attempt in range(1, attempts + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except OperationalError as exc:
            if attempt == attempts:
                raise RuntimeError(
                    f"Lot store {_describe(engine)} is unreachable after {attempts} attempts."
                ) from exc
            logger.warning("Lot store not reachable yet (attempt %s/%s): %s", attempt, attempts, exc)
            time.sleep(retry_delay_seconds)
        else:
            logger.info("Lot store reachable on attempt %s", attempt)
            return


def upgrade_to_head(engine: Engine) -> None:
    """Run the Alembic migrations inside one connection of ``engine``."""
    alembic_ini = PROJECT_ROOT / "alembic.ini"
    script_location = PROJECT_ROOT / "alembic"
    if not alembic_ini.exists() or not script_location.exists():
        raise RuntimeError("Alembic configuration is missing (alembic.ini or alembic/ directory not found).")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(script_location))
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")


def ensure_schema(engine: Engine, retries: int = 1, retry_delay_seconds: float = 0) -> None:
    """Create the lots table if it is missing. Safe to run on every start."""
    wait_for_db(engine, retries=retries, retry_delay_seconds=retry_delay_seconds)
    if engine.dialect.name == "sqlite":
        Lot.__table__.create(bind=engine, checkfirst=True)
    else:
        upgrade_to_head(engine)
    logger.info("Lots schema ready on %s", _describe(engine))
