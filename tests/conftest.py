"""Shared fixtures.

Every test gets its own config directory (``WAREHOUSE_CONFIG_DIR``) so the
display cache and config.json never touch the real home directory, and the
shared login secret is fixed through ``WAREHOUSE_MASTER_PASSWORD``.
"""
import json
import os
from pathlib import Path

import pytest
import requests

from database.transaction_dao import TransactionDAO
from database.workbook_store import WorkbookStore
from models.transaction import Transaction, TransactionType
from services.auth_service import AuthService
from services.transaction_service import TransactionService

SECRET = "s3cret-pass"


@pytest.fixture(autouse=True)
def _isolate_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_root = tmp_path / "config"
    config_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("WAREHOUSE_CONFIG_DIR", os.fspath(config_root))
    monkeypatch.setenv("WAREHOUSE_MASTER_PASSWORD", SECRET)
    monkeypatch.delenv("WAREHOUSE_STORE_URL", raising=False)


@pytest.fixture
def store() -> WorkbookStore:
    return WorkbookStore()


@pytest.fixture
def dao(store) -> TransactionDAO:
    return TransactionDAO(store)


@pytest.fixture
def auth() -> AuthService:
    svc = AuthService(secret=SECRET)
    assert svc.login(SECRET, "Simon").authorized
    return svc


@pytest.fixture
def service(dao, auth) -> TransactionService:
    return TransactionService(dao, auth)


def make_tx(**overrides) -> Transaction:
    values = dict(
        id="TX1",
        date="2024-03-01",
        category=TransactionType.INBOUND,
        material_name="主機板",
        account_category="A",
        material_number="PN-100",
        machine_category="BA",
        machine_number="M-01",
        quantity=2,
        unit_price=500,
        note="",
        operator="Simon",
    )
    values.update(overrides)
    return Transaction(**values)


class FakeResponse:
    def __init__(self, payload=None, status=200, raw=None):
        self._payload = payload
        self.status_code = status
        self._raw = raw

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._raw is not None:
            return json.loads(self._raw)
        return self._payload


class FakeSession:
    """Records posted bodies and answers from a queue (or a callable)."""

    def __init__(self, responses=None, handler=None):
        self.calls = []
        self._responses = list(responses or [])
        self._handler = handler

    def post(self, url, data=None, headers=None, timeout=None, allow_redirects=False):
        body = json.loads(data.decode("utf-8"))
        self.calls.append({"url": url, "body": body, "headers": headers,
                           "timeout": timeout, "allow_redirects": allow_redirects})
        if self._handler is not None:
            return self._handler(body)
        result = self._responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result
