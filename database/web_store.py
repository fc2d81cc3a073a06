"""SheetStore over a spreadsheet web-app endpoint.

Every call is one POST whose JSON body names an ``action`` and a
``partition``. The body is sent as text/plain so the endpoint does not see a
CORS preflight, and redirects are followed (script hosts answer with one).
The endpoint replies ``{"result": "ok", "data": ...}`` or
``{"result": "error", "message": ...}``.
"""
import json
from collections.abc import Sequence

import requests

from database.sheet_store import SheetStore, StoreError
from utils.constants import REQUEST_TIMEOUT_SECONDS
from utils.logging_setup import get_logger

log = get_logger("warehouse.web_store")


class SheetsWebStore(SheetStore):

    def __init__(self, url: str, timeout: float = REQUEST_TIMEOUT_SECONDS,
                 session: requests.Session | None = None):
        if not url or not url.startswith("https://"):
            raise ValueError("Store URL must be an https:// address.")
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()

    def _call(self, action: str, partition: str | None = None, **fields):
        body = {"action": action}
        if partition is not None:
            body["partition"] = partition
        body.update(fields)
        try:
            resp = self._session.post(
                self._url,
                data=json.dumps(body, ensure_ascii=False).encode("utf-8"),
                headers={"Content-Type": "text/plain;charset=utf-8"},
                timeout=self._timeout,
                allow_redirects=True,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            log.warning("Store request '%s' failed: %s", action, e)
            raise StoreError(f"連線失敗: {e}") from e
        except ValueError as e:
            raise StoreError(f"Invalid response to '{action}': {e}") from e

        if not isinstance(payload, dict):
            raise StoreError(f"Unexpected response to '{action}'")
        if payload.get("result") == "error":
            raise StoreError(payload.get("message") or f"'{action}' rejected by store")
        return payload.get("data")

    def partitions(self) -> list[str]:
        return [str(name) for name in self._call("partitions") or []]

    def create_partition(self, name: str, headers: Sequence[str] = ()) -> None:
        self._call("create_partition", name, headers=list(headers))

    def fetch_headers(self, name: str) -> list[str]:
        return [str(h).strip() for h in self._call("headers", name) or []]

    def fetch_all_rows(self, name: str) -> list[dict]:
        rows = self._call("rows", name) or []
        if not isinstance(rows, list):
            raise StoreError(f"Unexpected row data for '{name}'")
        return [row if isinstance(row, dict) else {} for row in rows]

    def append_headers(self, name: str, headers: Sequence[str]) -> None:
        if headers:
            self._call("append_headers", name, headers=list(headers))

    def append_row(self, name: str, values: Sequence) -> None:
        self._call("append_row", name, values=list(values))

    def overwrite_row(self, name: str, row_index: int, values: Sequence) -> None:
        self._call("overwrite_row", name, row_index=row_index, values=list(values))

    def delete_row(self, name: str, row_index: int) -> None:
        self._call("delete_row", name, row_index=row_index)
