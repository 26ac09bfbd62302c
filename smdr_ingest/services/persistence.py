import logging
from typing import Optional

from sqlalchemy import Table
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from smdr_ingest.schemas import CdrRecord

logger = logging.getLogger(__name__)


class CdrGateway:
    def __init__(self, engine: Engine, table: Table, log: Optional[logging.Logger] = None) -> None:
        self.engine = engine
        self.table = table
        self.logger = log or logger

    def ensure_schema(self) -> None:
        """Create the destination table unless it already exists."""
        self.table.metadata.create_all(self.engine, tables=[self.table], checkfirst=True)
        self.logger.info("Table %s is ready", self.table.name)

    def insert(self, record: CdrRecord) -> bool:
        """Write one record as one row. Failures are logged and the record dropped."""
        try:
            with self.engine.begin() as connection:
                connection.execute(self.table.insert(), record.model_dump())
        except SQLAlchemyError:
            self.logger.exception(
                "Failed to insert SMDR record (call_id=%s, call_start=%s, caller=%s)",
                record.call_id,
                record.call_start,
                record.caller,
            )
            return False
        self.logger.debug("Inserted SMDR record call_id=%s", record.call_id)
        return True
