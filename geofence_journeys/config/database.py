"""
Database Connection Module

Creates the read-only SQLAlchemy engine used to fetch device_geofencings rows.
Engines are built on demand and handed to callers; nothing is created at import.

On PostgreSQL every connection gets a statement_timeout, so queries are killed
if they exceed QUERY_TIMEOUT_SECONDS.
"""

import logging
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

from geofence_journeys.config.settings import Settings

logger = logging.getLogger("geofence_journeys")

# Suppress verbose SQLAlchemy SQL logging (only show errors, not full SQL)
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
logging.getLogger('sqlalchemy.pool').setLevel(logging.WARNING)


def _statement_timeout_listener(timeout_seconds: int):
    def _set_statement_timeout(dbapi_conn, connection_record):
        """
        Set statement_timeout on each new connection.

        The 'connect' event receives a raw DBAPI connection (psycopg2), so we use cursor.execute().
        """
        cursor = dbapi_conn.cursor()
        try:
            cursor.execute(f"SET statement_timeout = {int(timeout_seconds) * 1000}")
        finally:
            cursor.close()
        logger.debug(f"Set statement_timeout to {timeout_seconds} seconds on new connection")

    return _set_statement_timeout


def create_readonly_engine(settings: Settings) -> Engine:
    """
    Create the engine for geofencing queries.

    Args:
        settings: Application settings

    Returns:
        SQLAlchemy Engine
    """
    database_url = make_url(settings.database_url)
    logger.info(f"Read-Only Database URL: {database_url.render_as_string(hide_password=True)}")

    if database_url.get_backend_name() == "postgresql":
        engine = create_engine(
            database_url,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
            echo=False,
        )
        event.listen(engine, "connect", _statement_timeout_listener(settings.QUERY_TIMEOUT_SECONDS))
    else:
        engine = create_engine(database_url, echo=False)

    return engine
