"""Create the invoicing tables on the configured database."""

import structlog
from sqlalchemy import inspect

from app.backend.src.core.config import get_settings
from app.backend.src.core.logging import configure_logging
from app.backend.src.db import Base, get_engine
from app.backend.src.models import *  # noqa

LOGGER = structlog.get_logger(__name__)


def init_db() -> list[str]:
    """Create missing tables and return the table names now present."""

    engine = get_engine()
    LOGGER.info(
        "database_init_started",
        environment=get_settings().environment,
        database=engine.url.render_as_string(hide_password=True),
    )
    Base.metadata.create_all(bind=engine)
    tables = sorted(inspect(engine).get_table_names())
    LOGGER.info("database_tables_created", tables=tables)
    return tables


if __name__ == "__main__":
    configure_logging()
    init_db()
