import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url

from smdr_ingest.core.config import Settings

logger = logging.getLogger(__name__)


def create_db_engine(settings: Settings) -> Engine:
    url = make_url(settings.database_url)
    backend = url.get_backend_name()
    if backend == "sqlite":
        return create_engine(url, connect_args={"check_same_thread": False})
    connect_args = {}
    if backend == "postgresql" and settings.statement_timeout_ms:
        connect_args["options"] = f"-c statement_timeout={settings.statement_timeout_ms}"
    return create_engine(
        url,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def check_connection(engine: Engine, log: Optional[logging.Logger] = None) -> None:
    log = log or logger
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    log.info("Connected to database %s", engine.url.render_as_string(hide_password=True))
