import pytest
from sqlalchemy import create_engine

from smdr_ingest.models import build_cdr_table
from smdr_ingest.services.persistence import CdrGateway


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False}
    )
    yield engine
    engine.dispose()


@pytest.fixture()
def table():
    return build_cdr_table()


@pytest.fixture()
def gateway(engine, table):
    gateway = CdrGateway(engine, table)
    gateway.ensure_schema()
    return gateway
