"""Alias table for the ledger sheets.

Every stored column maps to one canonical field. A field lists the header text
written for new columns plus every key that has ever carried its value (older
sheet revisions, Chinese/English labels), in lookup priority order. The same
table drives writing rows and reading them back.
"""
from dataclasses import dataclass
from enum import Enum

from models.transaction import TransactionType


class FieldGroup(str, Enum):
    COMMON = "common"
    ACCOUNT = "account"     # ledger bucket, every category except REPAIR
    INBOUND = "inbound"     # receipt tracking, INBOUND only
    REPAIR = "repair"       # repair lifecycle, REPAIR only


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOL = "bool"
    DATE = "date"


@dataclass(frozen=True)
class FieldDef:
    attr: str               # Transaction attribute name
    header: str             # header text used when the column is created
    keys: tuple[str, ...]   # accepted aliases, highest priority first
    group: FieldGroup = FieldGroup.COMMON
    kind: FieldKind = FieldKind.TEXT

    def matches(self, header: str) -> bool:
        return header == self.header or header in self.keys


FIELDS: tuple[FieldDef, ...] = (
    FieldDef("id",               "id",             ("id", "ID", "編號")),
    FieldDef("date",             "date",           ("date", "日期", "單據日期"), kind=FieldKind.DATE),
    FieldDef("category",         "type",           ("type", "類別", "紀錄類別")),
    FieldDef("material_name",    "materialName",   ("materialName", "料件名稱", "維修零件/主體")),
    FieldDef("material_number",  "materialNumber", ("materialNumber", "料件編號", "料件編號(PN)")),
    FieldDef("machine_number",   "機台編號",        ("機台編號", "machineNumber", "機台 ID")),
    FieldDef("quantity",         "quantity",       ("quantity", "數量"), kind=FieldKind.NUMBER),
    FieldDef("unit_price",       "unitPrice",      ("unitPrice", "單價", "維修單價", "費用"), kind=FieldKind.NUMBER),
    FieldDef("total",            "total",          ("total", "總額", "維修總額", "小計", "結算總額"), kind=FieldKind.NUMBER),
    FieldDef("note",             "note",           ("note", "備註")),
    FieldDef("machine_category", "機台種類",        ("機台種類", "machineCategory")),
    FieldDef("operator",         "操作人員",        ("操作人員", "operator")),
    FieldDef("account_category", "帳目類別",        ("帳目類別", "accountCategory"), FieldGroup.ACCOUNT),
    FieldDef("is_received",      "是否收貨",        ("是否收貨", "isReceived"), FieldGroup.INBOUND, FieldKind.BOOL),
    FieldDef("serial_number",    "sn",             ("sn", "序號", "設備序號(SN)"), FieldGroup.REPAIR),
    FieldDef("fault_reason",     "故障原因",        ("故障原因", "faultReason"), FieldGroup.REPAIR),
    FieldDef("is_scrapped",      "是否報廢",        ("是否報廢", "isScrapped"), FieldGroup.REPAIR, FieldKind.BOOL),
    FieldDef("sent_date",        "送修日期",        ("送修日期", "sentDate"), FieldGroup.REPAIR, FieldKind.DATE),
    FieldDef("repair_date",      "完修日期",        ("完修日期", "repairDate"), FieldGroup.REPAIR, FieldKind.DATE),
    FieldDef("install_date",     "上機日期",        ("上機日期", "installDate"), FieldGroup.REPAIR, FieldKind.DATE),
)

FIELDS_BY_ATTR = {f.attr: f for f in FIELDS}

# Field groups blanked for each category
EXCLUDED_GROUPS: dict[TransactionType, frozenset[FieldGroup]] = {
    TransactionType.INBOUND:      frozenset({FieldGroup.REPAIR}),
    TransactionType.USAGE:        frozenset({FieldGroup.REPAIR, FieldGroup.INBOUND}),
    TransactionType.CONSTRUCTION: frozenset({FieldGroup.REPAIR, FieldGroup.INBOUND}),
    TransactionType.REPAIR:       frozenset({FieldGroup.ACCOUNT, FieldGroup.INBOUND}),
}


def is_applicable(field_def: FieldDef, category: TransactionType) -> bool:
    return field_def.group not in EXCLUDED_GROUPS[category]


def excluded_attrs(category: TransactionType) -> list[str]:
    return [f.attr for f in FIELDS if not is_applicable(f, category)]
