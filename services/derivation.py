"""Authoritative quantity / unit price / total.

Totals supplied by a caller are never trusted: every write and every read
recomputes them here from quantity and unit price.
"""
import math
from collections.abc import Mapping
from dataclasses import dataclass, replace

from models.field_schema import FIELDS_BY_ATTR, excluded_attrs
from models.transaction import Transaction, TransactionType
from utils.constants import SCRAP_MARKER


@dataclass(frozen=True)
class Financials:
    quantity: float
    unit_price: float
    total: float


def to_number(value) -> float:
    """Lenient numeric coercion; anything unusable becomes 0."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(str(value).strip().replace(",", ""))
        except ValueError:
            return 0
    if not math.isfinite(number):
        return 0
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _first_present(payload: Mapping, attr: str):
    for key in FIELDS_BY_ATTR[attr].keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def derive_financials(payload: Mapping) -> Financials:
    """Quantity is a whole number defaulting to 1 (a supplied 0 counts as
    absent); price defaults to 0."""
    # Fractions are truncated toward zero
    quantity = int(to_number(_first_present(payload, "quantity")))
    if quantity < 1:
        quantity = 1
    unit_price = to_number(_first_present(payload, "unit_price")) or 0
    if unit_price < 0:
        unit_price = 0
    return Financials(quantity, unit_price, quantity * unit_price)


def rederive(tx: Transaction) -> Transaction:
    f = derive_financials({"quantity": tx.quantity, "unitPrice": tx.unit_price})
    return replace(tx, quantity=f.quantity, unit_price=f.unit_price, total=f.total)


def apply_scrap_rule(tx: Transaction) -> Transaction:
    """A scrapped repair costs nothing and has no repair/install dates."""
    if not (tx.category is TransactionType.REPAIR and tx.is_scrapped):
        return tx
    note = tx.note or ""
    if SCRAP_MARKER not in note:
        note = f"{SCRAP_MARKER}{note}".strip()
    scrapped = replace(tx, unit_price=0, repair_date="", install_date="", note=note)
    return rederive(scrapped)


def apply_category_rules(tx: Transaction) -> Transaction:
    """Blank fields that do not belong to the record's category, then apply
    the scrap rule and recompute the total."""
    cleared = {}
    for attr in excluded_attrs(tx.category):
        cleared[attr] = False if isinstance(getattr(tx, attr), bool) else ""
    tx = replace(tx, **cleared) if cleared else tx
    return rederive(apply_scrap_rule(tx))
