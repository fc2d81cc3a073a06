import pytest
import requests

from conftest import FakeResponse, FakeSession
from database.sheet_store import StoreError
from database.transaction_dao import TransactionDAO
from database.web_store import SheetsWebStore

URL = "https://script.example.com/macros/s/abc/exec"


def test_rejects_plain_http():
    with pytest.raises(ValueError):
        SheetsWebStore("http://example.com/exec", session=FakeSession())


def test_request_shape():
    session = FakeSession([FakeResponse({"result": "ok", "data": ["進貨", "維修"]})])
    store = SheetsWebStore(URL, timeout=5, session=session)
    assert store.partitions() == ["進貨", "維修"]
    call = session.calls[0]
    assert call["url"] == URL
    assert call["body"] == {"action": "partitions"}
    assert call["headers"]["Content-Type"].startswith("text/plain")
    assert call["timeout"] == 5
    assert call["allow_redirects"] is True


def test_write_actions_carry_partition_and_values():
    session = FakeSession(handler=lambda body: FakeResponse({"result": "ok"}))
    store = SheetsWebStore(URL, session=session)
    store.append_row("用料", ["TX1", 2])
    store.overwrite_row("用料", 3, ["TX1", 4])
    store.delete_row("用料", 3)
    store.append_headers("用料", [])
    bodies = [c["body"] for c in session.calls]
    assert bodies == [
        {"action": "append_row", "partition": "用料", "values": ["TX1", 2]},
        {"action": "overwrite_row", "partition": "用料", "row_index": 3, "values": ["TX1", 4]},
        {"action": "delete_row", "partition": "用料", "row_index": 3},
    ]


def test_error_reply_raises():
    session = FakeSession([FakeResponse({"result": "error", "message": "sheet locked"})])
    with pytest.raises(StoreError, match="sheet locked"):
        SheetsWebStore(URL, session=session).fetch_headers("進貨")


def test_transport_failure_raises():
    session = FakeSession([requests.ConnectionError("offline")])
    with pytest.raises(StoreError):
        SheetsWebStore(URL, session=session).partitions()


def test_http_error_and_bad_json_raise():
    session = FakeSession([FakeResponse(status=500), FakeResponse(raw="<html>")])
    store = SheetsWebStore(URL, session=session)
    with pytest.raises(StoreError):
        store.partitions()
    with pytest.raises(StoreError):
        store.partitions()


def test_fetch_all_degrades_to_empty_list():
    session = FakeSession(handler=lambda body: FakeResponse(status=503))
    dao = TransactionDAO(SheetsWebStore(URL, session=session))
    assert dao.fetch_all(retries=1) == []
    assert len(session.calls) == 2


def test_fetch_all_reads_rows_over_http():
    def handler(body):
        if body["action"] == "partitions":
            return FakeResponse({"result": "ok", "data": ["維修"]})
        return FakeResponse({"result": "ok", "data": [
            {"id": "RP1", "date": "2024-03-31T16:00:00.000Z", "materialName": "電源",
             "quantity": 2, "unitPrice": 300, "total": 1, "是否報廢": False},
        ]})

    txs = TransactionDAO(SheetsWebStore(URL, session=FakeSession(handler=handler))).fetch_all()
    assert len(txs) == 1
    assert txs[0].date == "2024-04-01"
    assert txs[0].total == 600
