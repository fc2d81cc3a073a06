from conftest import make_tx
from database.sheet_store import StoreError
from database.transaction_dao import TransactionDAO, WriteResult
from database.workbook_store import WorkbookStore
from models.transaction import TransactionType
from services.auth_service import AuthService
from services.transaction_service import TransactionService


class _UnreachableStore(WorkbookStore):
    def partitions(self):
        raise StoreError("offline")


def test_operator_comes_from_session(service, dao):
    assert service.insert(make_tx(operator="someone else"))
    assert dao.fetch_all()[0].operator == "Simon"


def test_writes_require_login(dao):
    svc = TransactionService(dao, AuthService(secret="x"))
    assert not svc.insert(make_tx())
    assert not svc.update(make_tx())
    assert not svc.delete("TX1")
    assert svc.fetch_all() == []
    assert dao.fetch_all() == []


def test_save_dispatches_on_known_ids(service, dao):
    assert service.save(make_tx(), existing_ids=set())
    assert service.save(make_tx(unit_price=10), existing_ids={"TX1"})
    txs = dao.fetch_all()
    assert len(txs) == 1
    assert txs[0].total == 20


def test_delete_returns_true(service, dao):
    service.insert(make_tx(id="RP1", category=TransactionType.REPAIR))
    assert service.delete("RP1", TransactionType.REPAIR)
    assert dao.fetch_all() == []


def test_batch_insert(service, dao):
    assert not service.batch_insert([])
    txs = [make_tx(id="B1"), make_tx(id="B2", category=TransactionType.REPAIR,
                                     account_category="A")]
    assert service.batch_insert(txs)
    stored = {t.id: t for t in service.fetch_all()}
    assert set(stored) == {"B1", "B2"}
    assert stored["B2"].account_category == ""
    assert all(t.operator == "Simon" for t in stored.values())


def test_write_failure_is_reported_as_false(auth):
    class BrokenDAO:
        def insert(self, tx):
            return WriteResult(False, "offline")

    assert not TransactionService(BrokenDAO(), auth).insert(make_tx())


def test_editing_category_keeps_one_copy(service, dao):
    service.insert(make_tx(id="TX1", category=TransactionType.INBOUND))
    assert service.save(make_tx(id="TX1", category=TransactionType.USAGE), existing_ids={"TX1"})
    txs = dao.fetch_all()
    assert [t.id for t in txs] == ["TX1"]
    assert txs[0].category is TransactionType.USAGE


def test_sync_reports_failure_as_none(auth):
    failing = TransactionService(TransactionDAO(_UnreachableStore()), auth)
    assert failing.sync() is None
    assert failing.fetch_all() == []


def test_sync_returns_rows_and_needs_login(service, dao):
    service.insert(make_tx())
    assert [t.id for t in service.sync()] == ["TX1"]
    assert TransactionService(dao, AuthService(secret="x")).sync() is None
