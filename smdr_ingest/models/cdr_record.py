from typing import Optional

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Interval, MetaData, Table, Text

DEFAULT_TABLE_NAME = "avayadata"


def build_cdr_table(name: str = DEFAULT_TABLE_NAME, metadata: Optional[MetaData] = None) -> Table:
    """Append-only SMDR table.

    Column names are the lower-cased identifiers existing deployments already
    write to; each column's ``key`` is the matching ``CdrRecord`` field.
    """
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column("callstart", DateTime(), key="call_start"),
        Column("connectedtime", Interval(), key="connected_time"),
        Column("ringtime", BigInteger(), key="ring_time"),
        Column("caller", Text(), key="caller"),
        Column("calldirection", Text(), key="call_direction"),
        Column("callednumber", Text(), key="called_number"),
        Column("dialednumber", Text(), key="dialed_number"),
        Column("account", Text(), key="account"),
        Column("isinternal", Boolean(), key="is_internal"),
        Column("callid", BigInteger(), key="call_id"),
        Column("continuation", Boolean(), key="continuation"),
        Column("party1device", Text(), key="party1_device"),
        Column("party1name", Text(), key="party1_name"),
        Column("party2device", Text(), key="party2_device"),
        Column("party2name", Text(), key="party2_name"),
        Column("externaltargeterid", Text(), key="external_targeter_id"),
        Column("holdtime", BigInteger(), key="hold_time"),
        Column("parktime", BigInteger(), key="park_time"),
        Column("authvalid", Text(), key="auth_valid"),
        Column("authcode", Text(), key="auth_code"),
        Column("usercharged", Text(), key="user_charged"),
        Column("callcharge", Text(), key="call_charge"),
        Column("currency", Text(), key="currency"),
        Column("amountatlastuserchange", Text(), key="amount_at_last_user_change"),
        Column("callunits", Text(), key="call_units"),
        Column("unitsatlastuserchange", Text(), key="units_at_last_user_change"),
        Column("costperunit", Text(), key="cost_per_unit"),
        Column("markup", Text(), key="mark_up"),
        Column("externaltargetingcause", Text(), key="external_targeting_cause"),
        Column("externaltargetednumber", Text(), key="external_targeted_number"),
        Column("callingpartyserveripaddress", Text(), key="calling_party_server_ip_address"),
        Column("uniquecallidforthecallerext", Text(), key="unique_call_id_for_caller_ext"),
        Column("calledpartyserverip", Text(), key="called_party_server_ip"),
        Column("uniquecallidforcalledext", Text(), key="unique_call_id_for_called_ext"),
        Column("smdrrecordtime", DateTime(), key="smdr_record_time"),
        Column("callerconsentdirective", Text(), key="caller_consent_directive"),
        Column("callingnumberverification", Text(), key="calling_number_verification"),
        Column("undefined", Text(), key="undefined"),
    )
