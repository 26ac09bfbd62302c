from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CdrRecord(BaseModel):
    """One SMDR line with every column typed.

    All fields are required but nullable: a record cannot exist with a
    column left out, only with a column that failed to convert.
    """

    model_config = ConfigDict(frozen=True)

    call_start: Optional[datetime]
    connected_time: Optional[timedelta]
    ring_time: Optional[int]
    caller: Optional[str]
    call_direction: Optional[str]
    called_number: Optional[str]
    dialed_number: Optional[str]
    account: Optional[str]
    is_internal: Optional[bool]
    call_id: Optional[int]
    continuation: Optional[bool]
    party1_device: Optional[str]
    party1_name: Optional[str]
    party2_device: Optional[str]
    party2_name: Optional[str]
    external_targeter_id: Optional[str]
    hold_time: Optional[int]
    park_time: Optional[int]
    auth_valid: Optional[str]
    auth_code: Optional[str]
    user_charged: Optional[str]
    call_charge: Optional[str]
    currency: Optional[str]
    amount_at_last_user_change: Optional[str]
    call_units: Optional[str]
    units_at_last_user_change: Optional[str]
    cost_per_unit: Optional[str]
    mark_up: Optional[str]
    external_targeting_cause: Optional[str]
    external_targeted_number: Optional[str]
    calling_party_server_ip_address: Optional[str]
    unique_call_id_for_caller_ext: Optional[str]
    called_party_server_ip: Optional[str]
    unique_call_id_for_called_ext: Optional[str]
    smdr_record_time: Optional[datetime]
    caller_consent_directive: Optional[str]
    calling_number_verification: Optional[str]
    undefined: Optional[str]
