import asyncio
import logging
import signal
from typing import Optional, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from smdr_ingest.core.config import Settings
from smdr_ingest.core.database import check_connection, create_db_engine
from smdr_ingest.exceptions import StartupError
from smdr_ingest.models import build_cdr_table
from smdr_ingest.parser import RecordParser
from smdr_ingest.server import SmdrServer
from smdr_ingest.services.address_filter import AddressFilter
from smdr_ingest.services.persistence import CdrGateway

logger = logging.getLogger(__name__)


def build_server(
    settings: Settings,
    engine: Optional[Engine] = None,
    log: Optional[logging.Logger] = None,
) -> Tuple[SmdrServer, Engine]:
    log = log or logger
    try:
        if engine is None:
            engine = create_db_engine(settings)
        check_connection(engine, log.getChild("database"))
    except (SQLAlchemyError, ImportError) as exc:
        raise StartupError(f"Failed to open database: {exc}") from exc

    gateway = CdrGateway(engine, build_cdr_table(settings.table_name), log.getChild("persistence"))
    try:
        gateway.ensure_schema()
    except SQLAlchemyError as exc:
        raise StartupError(f"Failed to init schema: {exc}") from exc

    server = SmdrServer(
        gateway=gateway,
        address_filter=AddressFilter(settings.source_filter, log.getChild("filter")),
        parser=RecordParser(log.getChild("parser")),
        host=settings.listen_host,
        port=settings.port,
        max_record_bytes=settings.max_record_bytes,
        read_timeout=settings.read_timeout_seconds,
        log=log.getChild("server"),
    )
    return server, engine


async def serve(settings: Settings, log: Optional[logging.Logger] = None) -> None:
    server, engine = build_server(settings, log=log)
    try:
        await server.start()

        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)

        server_task = asyncio.create_task(server.serve_forever())
        await stop_event.wait()
        await server.close()
        server_task.cancel()
        try:
            await server_task
        except asyncio.CancelledError:
            pass
    finally:
        engine.dispose()
