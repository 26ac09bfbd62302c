import asyncio
import logging
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from smdr_ingest.exceptions import StartupError
from smdr_ingest.parser import RecordParser
from smdr_ingest.server import SmdrServer, format_peer
from smdr_ingest.services.address_filter import AddressFilter
from smdr_ingest.tests.samples import SAMPLE_LINE


class FakeReader:
    def __init__(self, payload: bytes = b"", delay: float = 0) -> None:
        self.payload = payload
        self.delay = delay
        self.reads = 0

    async def read(self, n: int = -1) -> bytes:
        self.reads += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.payload[:n]


class FakeWriter:
    def __init__(self, peer) -> None:
        self.peer = peer
        self.closed = False

    def get_extra_info(self, name, default=None):
        if name == "peername":
            return self.peer
        return default

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


class RecordingGateway:
    def __init__(self, error: Exception | None = None) -> None:
        self.records = []
        self.error = error

    def insert(self, record) -> bool:
        if self.error:
            raise self.error
        self.records.append(record)
        return True


def make_server(gateway, allowed=None, **kwargs) -> SmdrServer:
    return SmdrServer(gateway, AddressFilter(allowed), RecordParser(), **kwargs)


def handle(server, reader, writer) -> None:
    asyncio.run(server.handle_connection(reader, writer))


def test_format_peer():
    assert format_peer(("10.0.0.5", 51324)) == "10.0.0.5:51324"


def test_rejected_connection_is_closed_without_read():
    gateway = RecordingGateway()
    reader = FakeReader(SAMPLE_LINE.encode())
    writer = FakeWriter(("10.0.0.6", 9999))

    handle(make_server(gateway, allowed="10.0.0.5"), reader, writer)

    assert reader.reads == 0
    assert writer.closed
    assert gateway.records == []


def test_admitted_connection_is_stored():
    gateway = RecordingGateway()
    reader = FakeReader(SAMPLE_LINE.encode())
    writer = FakeWriter(("10.0.0.5", 51324))

    handle(make_server(gateway, allowed="10.0.0.5"), reader, writer)

    assert reader.reads == 1
    assert writer.closed
    assert len(gateway.records) == 1
    assert gateway.records[0].call_start == datetime(2024, 1, 2, 3, 4, 5)


def test_read_is_bounded_by_max_record_bytes():
    gateway = RecordingGateway()
    reader = FakeReader(SAMPLE_LINE.encode())

    handle(make_server(gateway, max_record_bytes=20), reader, FakeWriter(("127.0.0.1", 1)))

    assert gateway.records == []


def test_stalled_peer_times_out(caplog):
    caplog.set_level(logging.ERROR)
    gateway = RecordingGateway()
    writer = FakeWriter(("127.0.0.1", 4000))

    handle(make_server(gateway, read_timeout=0.05), FakeReader(SAMPLE_LINE.encode(), delay=1), writer)

    assert writer.closed
    assert gateway.records == []
    assert "No record from 127.0.0.1:4000" in caplog.text


def test_closed_peer_produces_no_record(caplog):
    caplog.set_level(logging.ERROR)
    gateway = RecordingGateway()

    handle(make_server(gateway), FakeReader(b""), FakeWriter(("127.0.0.1", 4000)))

    assert gateway.records == []
    assert "closed before sending a record" in caplog.text


def test_wrong_column_count_is_not_inserted(caplog):
    caplog.set_level(logging.ERROR)
    gateway = RecordingGateway()

    handle(make_server(gateway), FakeReader(b"a,b,c\n"), FakeWriter(("127.0.0.1", 4000)))

    assert gateway.records == []
    assert "3 columns received instead of 38" in caplog.text


def test_unexpected_failure_stays_inside_connection(caplog):
    caplog.set_level(logging.ERROR)
    gateway = RecordingGateway(error=RuntimeError("boom"))
    writer = FakeWriter(("127.0.0.1", 4000))

    handle(make_server(gateway), FakeReader(SAMPLE_LINE.encode()), writer)

    assert writer.closed
    assert "Unexpected failure handling connection from 127.0.0.1:4000" in caplog.text


def test_end_to_end_record_is_stored(gateway, engine, table):
    server = make_server(gateway, host="127.0.0.1", port=0, read_timeout=5)

    async def scenario() -> bytes:
        await server.start()
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
            writer.write(SAMPLE_LINE.encode())
            await writer.drain()
            reply = await asyncio.wait_for(reader.read(), timeout=5)
            writer.close()
            await writer.wait_closed()
            return reply
        finally:
            await server.close()

    assert asyncio.run(scenario()) == b""

    with engine.connect() as connection:
        rows = connection.execute(select(table)).all()
    assert len(rows) == 1
    row = rows[0]._mapping
    assert row[table.c.call_start] == datetime(2024, 1, 2, 3, 4, 5)
    assert row[table.c.connected_time] == timedelta(seconds=3723)
    assert row[table.c.ring_time] == 10
    assert row[table.c.is_internal] is True
    assert row[table.c.dialed_number] == "556"


def test_bind_failure_is_fatal():
    first = make_server(RecordingGateway(), host="127.0.0.1", port=0)

    async def scenario() -> None:
        await first.start()
        try:
            second = make_server(RecordingGateway(), host="127.0.0.1", port=first.bound_port)
            with pytest.raises(StartupError):
                await second.start()
        finally:
            await first.close()

    asyncio.run(scenario())


def test_stalled_peer_does_not_block_other_connections(gateway, engine, table):
    server = make_server(gateway, host="127.0.0.1", port=0, read_timeout=5)

    def stored_rows() -> int:
        with engine.connect() as connection:
            return connection.execute(select(func.count()).select_from(table)).scalar()

    async def scenario() -> tuple[int, bool]:
        await server.start()
        try:
            stalled_reader, stalled_writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
            reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
            writer.write(SAMPLE_LINE.encode())
            await writer.drain()
            await asyncio.wait_for(reader.read(), timeout=2)
            writer.close()
            await writer.wait_closed()

            rows = stored_rows()
            stalled_open = not stalled_reader.at_eof()
            stalled_writer.close()
            await stalled_writer.wait_closed()
            return rows, stalled_open
        finally:
            await server.close()

    rows, stalled_open = asyncio.run(scenario())

    assert rows == 1
    assert stalled_open


def test_loop_errors_go_to_server_logger(caplog):
    caplog.set_level(logging.ERROR)
    server = make_server(RecordingGateway(), host="127.0.0.1", port=0, log=logging.getLogger("smdr_test.server"))

    async def scenario() -> None:
        await server.start()
        try:
            asyncio.get_running_loop().call_exception_handler(
                {"message": "socket.accept() out of system resource", "exception": OSError(24, "Too many open files")}
            )
        finally:
            await server.close()

    asyncio.run(scenario())

    records = [record for record in caplog.records if record.name == "smdr_test.server"]
    assert any("socket.accept() out of system resource" in record.getMessage() for record in records)
