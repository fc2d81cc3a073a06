import threading

from conftest import make_tx
from database.sheet_store import StoreError
from database.transaction_dao import TransactionDAO
from database.workbook_store import WorkbookStore
from models.transaction import CATEGORIES, TransactionType
from services.derivation import apply_category_rules
from utils.constants import DEFAULT_MATERIAL_NAME, DEFAULT_OPERATOR, SCRAP_MARKER


def _only(dao, tx_id):
    matches = [t for t in dao.fetch_all() if t.id == tx_id]
    assert len(matches) == 1
    return matches[0]


def test_insert_creates_partition_with_canonical_headers(dao, store):
    result = dao.insert(make_tx())
    assert result.ok and result.count == 1
    headers = store.fetch_headers("進貨")
    assert headers[:3] == ["id", "date", "type"]
    assert "是否收貨" in headers
    assert "故障原因" not in headers


def test_total_is_recomputed_on_write(dao, store):
    dao.insert(make_tx(quantity=3, unit_price=100, total=1))
    row = store.fetch_all_rows("進貨")[0]
    assert row["total"] == 300


def test_quantity_zero_is_stored_as_one(dao):
    dao.insert(make_tx(quantity=0, unit_price=50))
    tx = _only(dao, "TX1")
    assert tx.quantity == 1
    assert tx.total == 50


def test_round_trip_every_field(dao):
    repair = make_tx(
        id="RP1", category=TransactionType.REPAIR, account_category="",
        serial_number="SN-77", fault_reason="無法開機", sent_date="2024-03-02",
        repair_date="2024-03-09", install_date="2024-03-10", note="換電容",
        quantity=1, unit_price=1200,
    )
    inbound = make_tx(id="TX2", is_received=True, note="到貨")
    for tx in (repair, inbound):
        assert dao.insert(tx).ok
    for tx in (repair, inbound):
        assert _only(dao, tx.id) == apply_category_rules(tx)


def test_non_repair_never_stores_repair_fields(dao, store):
    dao.insert(make_tx(
        category=TransactionType.USAGE, serial_number="SN1", fault_reason="壞",
        sent_date="2024-01-01", repair_date="2024-01-02", install_date="2024-01-03",
    ))
    headers = store.fetch_headers("用料")
    for header in ("sn", "故障原因", "送修日期", "完修日期", "上機日期"):
        assert header not in headers
    tx = _only(dao, "TX1")
    assert (tx.serial_number, tx.fault_reason, tx.repair_date) == ("", "", "")


def test_repair_never_stores_account_or_receipt(dao, store):
    # A legacy repair sheet that still has the account and receipt columns
    store.create_partition("維修", ["id", "帳目類別", "是否收貨"])
    dao.insert(make_tx(id="RP1", category=TransactionType.REPAIR, account_category="A",
                       is_received=True))
    row = store.fetch_all_rows("維修")[0]
    assert row["帳目類別"] in ("", None)
    assert row["是否收貨"] in ("", None)


def test_scrapping_twice_keeps_one_marker(dao):
    tx = make_tx(id="RP1", category=TransactionType.REPAIR, is_scrapped=True,
                 unit_price=900, repair_date="2024-03-09", note="燒毀")
    dao.insert(tx)
    stored = _only(dao, "RP1")
    dao.update(stored)
    again = _only(dao, "RP1")
    assert again.note == f"{SCRAP_MARKER}燒毀"
    assert again.total == 0
    assert again.repair_date == ""


def test_header_accretion_is_idempotent(dao, store):
    store.create_partition("維修", ["ID", "日期", "料件名稱"])
    dao.insert(make_tx(id="RP1", category=TransactionType.REPAIR))
    first = store.fetch_headers("維修")
    dao.insert(make_tx(id="RP2", category=TransactionType.REPAIR))
    assert store.fetch_headers("維修") == first
    assert len(first) == len(set(first))
    assert "id" not in first and "date" not in first


def test_legacy_columns_are_written_in_place(dao, store):
    store.create_partition("用料", ["ID", "日期", "料件名稱", "機台 ID"])
    dao.insert(make_tx(category=TransactionType.USAGE, machine_number="M-9"))
    row = store.fetch_all_rows("用料")[0]
    assert row["ID"] == "TX1"
    assert row["料件名稱"] == "主機板"
    assert row["機台 ID"] == "M-9"


def test_alias_priority_on_read(dao, store):
    store.create_partition("用料", ["id", "machineNumber", "機台編號"])
    store.append_row("用料", ["TX1", "legacy", "canonical"])
    assert _only(dao, "TX1").machine_number == "canonical"


def test_read_defaults_and_blank_rows(dao, store):
    store.create_partition("建置", ["id", "materialName", "quantity", "unitPrice", "total"])
    store.append_row("建置", [None, None, None, None, None])
    store.append_row("建置", ["", "", "", 20, 999])
    txs = dao.fetch_all()
    assert len(txs) == 1
    tx = txs[0]
    assert tx.id == "row-2"
    assert tx.material_name == DEFAULT_MATERIAL_NAME
    assert tx.operator == DEFAULT_OPERATOR
    assert tx.account_category == "A"
    assert tx.category is TransactionType.CONSTRUCTION
    assert tx.total == 20


def test_update_overwrites_matching_row(dao, store):
    dao.insert(make_tx())
    result = dao.update(make_tx(quantity=5))
    assert result.ok
    assert result.message == "更新成功"
    rows = store.fetch_all_rows("進貨")
    assert len(rows) == 1
    assert rows[0]["total"] == 2500


def test_update_of_unknown_id_appends(dao, store):
    result = dao.update(make_tx(id="GHOST"))
    assert result.ok
    assert result.message == "找不到原紀錄，已新增"
    assert [r["id"] for r in store.fetch_all_rows("進貨")] == ["GHOST"]


def test_update_with_new_category_moves_the_record(dao, store):
    dao.insert(make_tx(id="TX1", category=TransactionType.INBOUND))
    dao.insert(make_tx(id="TX2", category=TransactionType.INBOUND))
    result = dao.update(make_tx(id="TX1", category=TransactionType.USAGE, quantity=3))
    assert result.ok
    assert result.message == "更新成功"
    assert [r["id"] for r in store.fetch_all_rows("進貨")] == ["TX2"]
    moved = _only(dao, "TX1")
    assert moved.category is TransactionType.USAGE
    assert moved.quantity == 3


def test_delete_removes_every_copy_across_partitions(dao, store):
    dao.insert(make_tx(id="X"))
    dao.insert(make_tx(id="X1"))
    dao.insert(make_tx(id="X", category=TransactionType.USAGE))
    dao.insert(make_tx(id="X", category=TransactionType.REPAIR))
    dao.insert(make_tx(id="X"))
    result = dao.delete("X")
    assert result.ok and result.count == 4
    assert [t.id for t in dao.fetch_all()] == ["X1"]


def test_delete_unknown_id_is_not_an_error(dao):
    dao.insert(make_tx())
    result = dao.delete("TX")
    assert result.ok and result.count == 0
    assert len(dao.fetch_all()) == 1


def test_batch_insert_mixed_categories(dao, store):
    txs = [make_tx(id=f"B{i}", category=c) for i, c in enumerate(CATEGORIES)]
    result = dao.batch_insert(txs)
    assert result.ok and result.count == 4
    assert sorted(store.partitions()) == sorted(c.value for c in CATEGORIES)


class _FailingAppendStore(WorkbookStore):
    def __init__(self, fail_after):
        super().__init__()
        self._left = fail_after

    def append_row(self, name, values):
        if self._left == 0:
            raise StoreError("quota exceeded")
        self._left -= 1
        super().append_row(name, values)


def test_batch_insert_stops_at_first_failure():
    store = _FailingAppendStore(fail_after=2)
    dao = TransactionDAO(store)
    result = dao.batch_insert([make_tx(id=f"B{i}") for i in range(5)])
    assert not result.ok
    assert result.count == 3
    assert result.message == "quota exceeded"
    assert len(store.fetch_all_rows("進貨")) == 2


def test_write_failure_returns_result():
    dao = TransactionDAO(_FailingAppendStore(fail_after=0))
    result = dao.insert(make_tx())
    assert not result.ok
    assert "quota" in result.message


class _FlakyStore(WorkbookStore):
    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.calls = 0

    def partitions(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise StoreError("timeout")
        return super().partitions()


def test_fetch_retries_then_succeeds():
    store = _FlakyStore(failures=0)
    dao = TransactionDAO(store)
    dao.insert(make_tx())
    store.calls, store.failures = 0, 1
    assert len(dao.fetch_all(retries=1)) == 1


def test_fetch_gives_up_with_empty_list():
    store = _FlakyStore(failures=10)
    assert TransactionDAO(store).fetch_all(retries=2) == []
    assert store.calls == 3


def test_cancelled_fetch_returns_nothing(dao):
    dao.insert(make_tx())
    cancel = threading.Event()
    cancel.set()
    assert dao.fetch_all(cancel=cancel) == []


def test_fetch_tells_failure_apart_from_empty_ledger(dao):
    assert dao.fetch() == []
    assert TransactionDAO(_FlakyStore(failures=10)).fetch(retries=1) is None


def test_cancelled_fetch_is_none(dao):
    cancel = threading.Event()
    cancel.set()
    assert dao.fetch(cancel=cancel) is None
