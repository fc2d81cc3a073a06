import math

import pytest

from conftest import make_tx
from models.transaction import TransactionType
from services.derivation import (
    apply_category_rules, apply_scrap_rule, derive_financials, rederive, to_number,
)
from utils.constants import SCRAP_MARKER


@pytest.mark.parametrize("raw, expected", [
    (None, 0),
    ("", 0),
    ("abc", 0),
    ("1,250", 1250),
    (" 3.5 ", 3.5),
    (4.0, 4),
    (True, 1),
    (math.inf, 0),
    (float("nan"), 0),
])
def test_to_number(raw, expected):
    assert to_number(raw) == expected


def test_supplied_total_is_discarded():
    f = derive_financials({"quantity": 3, "unitPrice": 40, "total": 99999})
    assert (f.quantity, f.unit_price, f.total) == (3, 40, 120)


@pytest.mark.parametrize("payload", [{}, {"quantity": None}, {"quantity": 0}, {"quantity": "0"}])
def test_quantity_defaults_to_one(payload):
    assert derive_financials(payload).quantity == 1


def test_negative_values_are_clamped():
    f = derive_financials({"quantity": -4, "unitPrice": -10})
    assert f.quantity == 1
    assert f.unit_price == 0
    assert f.total == 0


@pytest.mark.parametrize("raw, expected", [(1.5, 1), ("2.9", 2), (0.4, 1), (-0.5, 1)])
def test_fractional_quantity_is_truncated(raw, expected):
    f = derive_financials({"quantity": raw, "unitPrice": 100})
    assert f.quantity == expected
    assert isinstance(f.quantity, int)
    assert f.total == expected * 100


def test_alias_keys_are_honoured():
    f = derive_financials({"數量": "2", "單價": "150"})
    assert f.total == 300


def test_rederive_fixes_stale_total():
    tx = make_tx(quantity=2, unit_price=500, total=1)
    assert rederive(tx).total == 1000


def test_scrap_rule_zeroes_cost_and_clears_dates():
    tx = make_tx(
        category=TransactionType.REPAIR, is_scrapped=True, unit_price=800,
        repair_date="2024-03-05", install_date="2024-03-06", note="主機板燒毀",
    )
    out = apply_scrap_rule(tx)
    assert out.unit_price == 0
    assert out.total == 0
    assert out.repair_date == ""
    assert out.install_date == ""
    assert out.note == f"{SCRAP_MARKER}主機板燒毀"


def test_scrap_marker_is_added_once():
    tx = make_tx(category=TransactionType.REPAIR, is_scrapped=True, note="x")
    twice = apply_scrap_rule(apply_scrap_rule(tx))
    assert twice.note.count(SCRAP_MARKER) == 1


def test_scrap_rule_ignores_non_repairs():
    tx = make_tx(is_scrapped=True, unit_price=10)
    assert apply_scrap_rule(tx) is tx


def test_category_rules_blank_repair_fields_on_usage():
    tx = make_tx(
        category=TransactionType.USAGE, serial_number="SN1", fault_reason="壞了",
        sent_date="2024-01-01", repair_date="2024-01-02", install_date="2024-01-03",
        is_received=True, is_scrapped=True,
    )
    out = apply_category_rules(tx)
    assert out.serial_number == ""
    assert out.fault_reason == ""
    assert out.sent_date == out.repair_date == out.install_date == ""
    assert out.is_received is False
    assert out.is_scrapped is False
    assert out.account_category == "A"


def test_category_rules_blank_account_on_repair():
    tx = make_tx(category=TransactionType.REPAIR, account_category="B", is_received=True)
    out = apply_category_rules(tx)
    assert out.account_category == ""
    assert out.is_received is False


def test_inbound_keeps_receipt_flag():
    out = apply_category_rules(make_tx(is_received=True))
    assert out.is_received is True
