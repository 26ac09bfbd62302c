import logging
import re
from typing import Any, Callable, List, Optional, Tuple

from smdr_ingest.coercers import (
    coerce_bool,
    coerce_duration,
    coerce_int,
    coerce_text,
    coerce_timestamp,
)
from smdr_ingest.exceptions import ColumnCountError
from smdr_ingest.schemas import CdrRecord

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = ","
ENCODING = "utf-8"

_LINE_END = re.compile(r"[\r\n]")

# Wire order of the switch's SMDR columns.
COLUMNS: Tuple[Tuple[str, Callable[[str], Any]], ...] = (
    ("call_start", coerce_timestamp),
    ("connected_time", coerce_duration),
    ("ring_time", coerce_int),
    ("caller", coerce_text),
    ("call_direction", coerce_text),
    ("called_number", coerce_text),
    ("dialed_number", coerce_text),
    ("account", coerce_text),
    ("is_internal", coerce_bool),
    ("call_id", coerce_int),
    ("continuation", coerce_bool),
    ("party1_device", coerce_text),
    ("party1_name", coerce_text),
    ("party2_device", coerce_text),
    ("party2_name", coerce_text),
    ("external_targeter_id", coerce_text),
    ("hold_time", coerce_int),
    ("park_time", coerce_int),
    ("auth_valid", coerce_text),
    ("auth_code", coerce_text),
    ("user_charged", coerce_text),
    ("call_charge", coerce_text),
    ("currency", coerce_text),
    ("amount_at_last_user_change", coerce_text),
    ("call_units", coerce_text),
    ("units_at_last_user_change", coerce_text),
    ("cost_per_unit", coerce_text),
    ("mark_up", coerce_text),
    ("external_targeting_cause", coerce_text),
    ("external_targeted_number", coerce_text),
    ("calling_party_server_ip_address", coerce_text),
    ("unique_call_id_for_caller_ext", coerce_text),
    ("called_party_server_ip", coerce_text),
    ("unique_call_id_for_called_ext", coerce_text),
    ("smdr_record_time", coerce_timestamp),
    ("caller_consent_directive", coerce_text),
    ("calling_number_verification", coerce_text),
    ("undefined", coerce_text),
)

COLUMN_COUNT = len(COLUMNS)


def extract_line(buffer: bytes) -> str:
    """Decode a receive buffer and keep only its first line."""
    text = buffer.decode(ENCODING, errors="replace")
    match = _LINE_END.search(text)
    if match:
        return text[: match.start()]
    return text


def split_columns(line: str) -> List[str]:
    return line.split(FIELD_SEPARATOR)


class RecordParser:
    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.logger = log or logger

    def parse(self, buffer: bytes) -> CdrRecord:
        columns = split_columns(extract_line(buffer))
        if len(columns) != COLUMN_COUNT:
            self.log_columns(columns)
            raise ColumnCountError(len(columns), COLUMN_COUNT, columns)
        values = {name: coerce(column) for (name, coerce), column in zip(COLUMNS, columns)}
        return CdrRecord(**values)

    def log_columns(self, columns: List[str]) -> None:
        for position, column in enumerate(columns, start=1):
            self.logger.info("Column %d: %r", position, column)
