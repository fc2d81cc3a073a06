from datetime import datetime, timezone

from models.field_schema import FIELDS_BY_ATTR
from models.transaction import TransactionType
from services.normalizer import (
    find_field, project_row, read_record, read_value, resolve_headers, target_fields,
)


def test_find_field_matches_header_and_aliases():
    assert find_field("機台 ID").attr == "machine_number"
    assert find_field("machineNumber").attr == "machine_number"
    assert find_field(" 維修單價 ").attr == "unit_price"
    assert find_field("random column") is None
    assert find_field(None) is None


def test_target_fields_per_category():
    repair = {f.attr for f in target_fields(TransactionType.REPAIR)}
    usage = {f.attr for f in target_fields(TransactionType.USAGE)}
    assert "fault_reason" in repair and "account_category" not in repair
    assert "account_category" in usage and "serial_number" not in usage
    assert "is_received" in {f.attr for f in target_fields(TransactionType.INBOUND)}


def test_resolve_headers_on_empty_partition():
    missing = resolve_headers([], TransactionType.INBOUND)
    assert missing[:3] == ["id", "date", "type"]
    assert "是否收貨" in missing
    assert "故障原因" not in missing


def test_resolve_headers_is_idempotent():
    first = resolve_headers(["ID", "日期"], TransactionType.REPAIR)
    assert "id" not in first and "date" not in first
    assert resolve_headers(["ID", "日期"] + first, TransactionType.REPAIR) == []


def test_resolve_headers_never_duplicates_aliases():
    missing = resolve_headers(["機台 ID", "料件名稱"], TransactionType.USAGE)
    assert "機台編號" not in missing
    assert "materialName" not in missing


def test_project_row_uses_derived_financials():
    headers = ["id", "type", "quantity", "unitPrice", "total", "note"]
    payload = {"quantity": 0, "unitPrice": 30, "total": 12345, "note": "x"}
    row = project_row(headers, TransactionType.USAGE, payload, "TX9")
    assert row == ["TX9", "用料", 1, 30, 30, "x"]


def test_project_row_blanks_fields_outside_category():
    headers = ["sn", "故障原因", "帳目類別", "是否收貨"]
    payload = {"sn": "SN1", "faultReason": "壞", "accountCategory": "A", "isReceived": True}
    assert project_row(headers, TransactionType.USAGE, payload, "TX1") == ["", "", "A", ""]
    assert project_row(headers, TransactionType.REPAIR, payload, "RP1") == ["SN1", "壞", "", ""]


def test_project_row_unknown_headers():
    row = project_row(["ID", "Type", "whatever"], TransactionType.INBOUND, {}, "TX1")
    assert row == ["TX1", "進貨", ""]


def test_project_row_coerces_dates_and_bools():
    headers = ["date", "是否收貨"]
    payload = {"date": "2024-03-14T16:30:00Z", "isReceived": "是"}
    assert project_row(headers, TransactionType.INBOUND, payload, "TX1") == ["2024-03-15", True]


def test_read_value_alias_priority():
    raw = {"machineNumber": "legacy", "機台編號": "canonical"}
    assert read_value(raw, FIELDS_BY_ATTR["machine_number"]) == "canonical"


def test_read_value_blank_falls_through():
    raw = {"機台編號": "  ", "machineNumber": "M-7"}
    assert read_value(raw, FIELDS_BY_ATTR["machine_number"]) == "M-7"


def test_read_value_numbers_and_integral_floats():
    raw = {"數量": "3", "料件編號": 12345.0}
    assert read_value(raw, FIELDS_BY_ATTR["quantity"]) == 3
    assert read_value(raw, FIELDS_BY_ATTR["material_number"]) == "12345"


def test_read_value_datetime_cells():
    raw = {"date": datetime(2024, 3, 31, 17, 0, tzinfo=timezone.utc)}
    assert read_value(raw, FIELDS_BY_ATTR["date"]) == "2024-04-01"


def test_read_record_blanks_non_applicable_fields():
    raw = {"id": "TX1", "帳目類別": "B", "sn": "SN9", "是否收貨": "TRUE"}
    rec = read_record(raw, TransactionType.USAGE)
    assert rec["account_category"] == "B"
    assert rec["serial_number"] == ""
    assert rec["is_received"] is False
    assert set(rec) == set(FIELDS_BY_ATTR)
