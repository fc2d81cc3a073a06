import random
import string
import time
from dataclasses import dataclass
from enum import Enum


class TransactionType(str, Enum):
    """Record category. Values are the persisted partition (sheet) names."""

    INBOUND = "進貨"
    USAGE = "用料"
    CONSTRUCTION = "建置"
    REPAIR = "維修"

    @classmethod
    def parse(cls, value) -> "TransactionType | None":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        for member in cls:
            if text in (member.value, member.name):
                return member
        return None


CATEGORIES = tuple(TransactionType)

# Transaction attribute → wire/payload key
PAYLOAD_KEYS = {
    "id": "id",
    "date": "date",
    "category": "type",
    "account_category": "accountCategory",
    "material_name": "materialName",
    "material_number": "materialNumber",
    "machine_category": "machineCategory",
    "machine_number": "machineNumber",
    "serial_number": "sn",
    "quantity": "quantity",
    "unit_price": "unitPrice",
    "total": "total",
    "note": "note",
    "operator": "operator",
    "fault_reason": "faultReason",
    "is_scrapped": "isScrapped",
    "is_received": "isReceived",
    "sent_date": "sentDate",
    "repair_date": "repairDate",
    "install_date": "installDate",
}


@dataclass
class Transaction:
    id: str
    date: str                       # 'YYYY-MM-DD', Taipei civil date
    category: TransactionType
    material_name: str
    account_category: str = ""
    material_number: str = ""
    machine_category: str = ""
    machine_number: str = ""
    serial_number: str = ""         # REPAIR only
    quantity: float = 1
    unit_price: float = 0
    total: float = 0                # always derived: quantity * unit_price
    note: str = ""
    operator: str = ""
    fault_reason: str = ""          # REPAIR only
    is_scrapped: bool = False       # REPAIR only
    is_received: bool = False       # INBOUND only
    sent_date: str = ""             # REPAIR only
    repair_date: str = ""           # REPAIR only
    install_date: str = ""          # REPAIR only

    @property
    def is_repair(self) -> bool:
        return self.category is TransactionType.REPAIR

    @property
    def is_repairing(self) -> bool:
        """Repair sent out but neither finished nor written off."""
        return self.is_repair and not self.repair_date and not self.is_scrapped

    def to_payload(self) -> dict:
        """camelCase payload keyed like the web form / alias table expects."""
        payload = {}
        for attr, key in PAYLOAD_KEYS.items():
            value = getattr(self, attr)
            payload[key] = value.value if isinstance(value, TransactionType) else value
        return payload


def new_transaction_id(category: TransactionType, batch: bool = False) -> str:
    """Timestamp + random id, unique across partitions.

    Form entries: 'TX…' / 'RP…'; batch entries: 'TX-B…'.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=5))
    if batch:
        return f"TX-B{millis}{suffix}"
    prefix = "RP" if category is TransactionType.REPAIR else "TX"
    return f"{prefix}{millis}{suffix}"
