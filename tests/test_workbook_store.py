import pytest
from openpyxl import load_workbook

from database.sheet_store import StoreError
from database.workbook_store import WorkbookStore


def test_new_workbook_has_no_partitions(store):
    assert store.partitions() == []
    assert not store.has_partition("進貨")


def test_create_partition_with_headers(store):
    store.create_partition("進貨", ["id", "date"])
    store.create_partition("進貨", ["ignored"])
    assert store.partitions() == ["進貨"]
    assert store.fetch_headers("進貨") == ["id", "date"]


def test_append_headers_and_rows(store):
    store.create_partition("用料")
    store.append_headers("用料", ["id", "materialName"])
    store.append_headers("用料", ["note"])
    store.append_row("用料", ["TX1", "螺絲", "a"])
    store.append_row("用料", ["TX2", "電源", ""])
    assert store.fetch_headers("用料") == ["id", "materialName", "note"]
    rows = store.fetch_all_rows("用料")
    assert [r["id"] for r in rows] == ["TX1", "TX2"]
    assert rows[0]["materialName"] == "螺絲"


def test_duplicate_headers_leftmost_wins(store):
    store.create_partition("建置", ["id", "note", "note"])
    store.append_row("建置", ["TX1", "left", "right"])
    assert store.fetch_all_rows("建置")[0]["note"] == "left"


def test_overwrite_and_delete_rows(store):
    store.create_partition("維修", ["id"])
    for tx_id in ("A", "B", "C"):
        store.append_row("維修", [tx_id])
    store.overwrite_row("維修", 1, ["B2"])
    store.delete_row("維修", 0)
    assert [r["id"] for r in store.fetch_all_rows("維修")] == ["B2", "C"]
    store.append_row("維修", ["D"])
    assert [r["id"] for r in store.fetch_all_rows("維修")] == ["B2", "C", "D"]


def test_row_index_out_of_range(store):
    store.create_partition("維修", ["id"])
    store.append_row("維修", ["A"])
    with pytest.raises(StoreError):
        store.overwrite_row("維修", 1, ["X"])
    with pytest.raises(StoreError):
        store.delete_row("維修", -1)


def test_unknown_partition_raises(store):
    with pytest.raises(StoreError):
        store.fetch_all_rows("不存在")


def test_changes_are_saved_to_disk(tmp_path):
    path = tmp_path / "ledger.xlsx"
    store = WorkbookStore(path)
    store.create_partition("進貨", ["id", "materialName"])
    store.append_row("進貨", ["TX1", "主機板"])

    assert load_workbook(path)["進貨"]["B2"].value == "主機板"
    reopened = WorkbookStore(path)
    assert reopened.fetch_all_rows("進貨") == [{"id": "TX1", "materialName": "主機板"}]


def test_corrupt_file_raises_store_error(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a workbook")
    with pytest.raises(StoreError):
        WorkbookStore(path)
