import asyncio
import logging
import socket
from typing import Any, Optional

from smdr_ingest.exceptions import ColumnCountError, StartupError
from smdr_ingest.parser import RecordParser
from smdr_ingest.services.address_filter import AddressFilter
from smdr_ingest.services.persistence import CdrGateway

logger = logging.getLogger(__name__)


def format_peer(peername: Any) -> str:
    if isinstance(peername, (tuple, list)) and len(peername) >= 2:
        return f"{peername[0]}:{peername[1]}"
    return str(peername)


class SmdrServer:
    """TCP listener that turns each admitted connection into one stored record.

    The accept loop belongs to asyncio; every accepted connection gets its own
    task running ``handle_connection``, so a stalled switch only ever holds up
    its own task, and only until ``read_timeout`` expires.
    """

    def __init__(
        self,
        gateway: CdrGateway,
        address_filter: AddressFilter,
        parser: RecordParser,
        host: str = "0.0.0.0",
        port: int = 514,
        max_record_bytes: int = 2096,
        read_timeout: float = 30.0,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.gateway = gateway
        self.address_filter = address_filter
        self.parser = parser
        self.host = host
        self.port = port
        self.max_record_bytes = max_record_bytes
        self.read_timeout = read_timeout
        self.logger = log or logger
        self._server: Optional[asyncio.AbstractServer] = None

    @property
    def bound_port(self) -> Optional[int]:
        if not self._server or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        try:
            self._server = await asyncio.start_server(
                self.handle_connection,
                host=self.host,
                port=self.port,
                family=socket.AF_INET,
                reuse_address=True,
            )
        except OSError as exc:
            raise StartupError(f"Failed to listen on {self.host}:{self.port}: {exc}") from exc
        asyncio.get_running_loop().set_exception_handler(self.handle_loop_exception)
        self.logger.info("Listening on %s:%s", self.host, self.bound_port)

    def handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        """Log failed accepts and other loop-level errors; accepting carries on."""
        self.logger.error(
            "Event loop error: %s", context.get("message", "unknown"), exc_info=context.get("exception")
        )

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        await self._server.serve_forever()

    async def close(self) -> None:
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        self.logger.info("Listener closed")

    async def handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = format_peer(writer.get_extra_info("peername"))
        try:
            if not self.address_filter.admits(peer):
                return
            await self.process(reader, peer)
        except Exception:
            self.logger.exception("Unexpected failure handling connection from %s", peer)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                self.logger.debug("Error closing connection from %s: %s", peer, exc)

    async def process(self, reader: asyncio.StreamReader, peer: str) -> bool:
        """Read, parse and store the single record a connection carries."""
        try:
            buffer = await asyncio.wait_for(reader.read(self.max_record_bytes), timeout=self.read_timeout)
        except asyncio.TimeoutError:
            self.logger.error("No record from %s within %.1fs", peer, self.read_timeout)
            return False
        except OSError as exc:
            self.logger.error("Failed to read from %s: %s", peer, exc)
            return False
        if not buffer:
            self.logger.error("Connection from %s closed before sending a record", peer)
            return False

        try:
            record = self.parser.parse(buffer)
        except ColumnCountError as exc:
            self.logger.error("Failed to parse record from %s: %s", peer, exc)
            return False

        return await asyncio.to_thread(self.gateway.insert, record)
