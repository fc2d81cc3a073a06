import threading
from collections.abc import Iterable
from dataclasses import dataclass

from database.sheet_store import SheetStore, StoreError
from models.field_schema import FIELDS_BY_ATTR
from models.transaction import CATEGORIES, Transaction, TransactionType
from services.derivation import apply_category_rules, rederive
from services.normalizer import project_row, read_record, read_value, resolve_headers
from utils.constants import (
    DEFAULT_ACCOUNT_CATEGORY,
    DEFAULT_MACHINE_CATEGORY,
    DEFAULT_MATERIAL_NAME,
    DEFAULT_OPERATOR,
    FETCH_RETRIES,
)
from utils.logging_setup import get_logger

log = get_logger("warehouse.transaction_dao")

_ID_FIELD = FIELDS_BY_ATTR["id"]


@dataclass
class WriteResult:
    ok: bool
    message: str = ""
    count: int = 0


def _is_blank(raw: dict) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in raw.values())


def _row_id(raw: dict) -> str:
    """Id of a stored row: the id column, else whatever sits in column one."""
    value = read_value(raw, _ID_FIELD)
    if value:
        return value
    first = next(iter(raw.values()), None)
    if first is None:
        return ""
    if isinstance(first, float) and first.is_integer():
        first = int(first)
    return str(first).strip()


class TransactionDAO:
    """The only component that talks to the store.

    Reads never raise: transport failures degrade to an empty list, or to
    None from fetch. Writes never raise either; they report through
    WriteResult.
    """

    def __init__(self, store: SheetStore):
        self._store = store
        # Store objects are not thread-safe; the background fetch shares them
        self._lock = threading.RLock()

    # ── Read ─────────────────────────────────────────────────────────────────

    def fetch_all(
        self,
        cancel: threading.Event | None = None,
        retries: int = FETCH_RETRIES,
    ) -> list[Transaction]:
        return self.fetch(cancel, retries) or []

    def fetch(
        self,
        cancel: threading.Event | None = None,
        retries: int = FETCH_RETRIES,
    ) -> list[Transaction] | None:
        """Like fetch_all, but None when the read failed or was cancelled,
        so callers can tell that apart from an empty ledger."""
        for attempt in range(retries + 1):
            if cancel is not None and cancel.is_set():
                return None
            try:
                with self._lock:
                    txs = self._read_all(cancel)
            except StoreError as e:
                log.warning("Fetch attempt %d/%d failed: %s", attempt + 1, retries + 1, e)
                continue
            if cancel is not None and cancel.is_set():
                return None
            return txs
        log.error("Fetch gave up after %d attempts", retries + 1)
        return None

    def _read_all(self, cancel: threading.Event | None) -> list[Transaction]:
        existing = set(self._store.partitions())
        result = []
        for category in CATEGORIES:
            if cancel is not None and cancel.is_set():
                return []
            if category.value not in existing:
                continue
            rows = self._store.fetch_all_rows(category.value)
            for index, raw in enumerate(rows):
                if _is_blank(raw):
                    continue
                try:
                    result.append(self._to_model(raw, category, index))
                except (ValueError, TypeError, AttributeError) as e:
                    log.warning("Skipping row %d of '%s': %s", index + 2, category.value, e)
        return result

    def _to_model(self, raw: dict, category: TransactionType, index: int) -> Transaction:
        rec = read_record(raw, category)
        rec["id"] = _row_id(raw) or f"row-{index + 1}"
        rec["category"] = category
        rec["material_name"] = rec["material_name"] or DEFAULT_MATERIAL_NAME
        rec["machine_category"] = rec["machine_category"] or DEFAULT_MACHINE_CATEGORY
        rec["operator"] = rec["operator"] or DEFAULT_OPERATOR
        if category is not TransactionType.REPAIR:
            rec["account_category"] = rec["account_category"] or DEFAULT_ACCOUNT_CATEGORY
        return rederive(Transaction(**rec))

    # ── Write ────────────────────────────────────────────────────────────────

    def _prepare_partition(self, category: TransactionType) -> list[str]:
        """Create the partition if needed and append any missing headers."""
        name = category.value
        if not self._store.has_partition(name):
            self._store.create_partition(name)
        headers = self._store.fetch_headers(name)
        missing = resolve_headers(headers, category)
        if missing:
            self._store.append_headers(name, missing)
            log.info("Added headers %s to '%s'", missing, name)
            headers = headers + missing
        return headers

    @staticmethod
    def _project(tx: Transaction, headers: list[str]) -> list:
        tx = apply_category_rules(tx)
        return project_row(headers, tx.category, tx.to_payload(), tx.id)

    def insert(self, tx: Transaction) -> WriteResult:
        try:
            with self._lock:
                headers = self._prepare_partition(tx.category)
                self._store.append_row(tx.category.value, self._project(tx, headers))
        except StoreError as e:
            log.error("Insert of %s failed: %s", tx.id, e)
            return WriteResult(False, str(e))
        return WriteResult(True, "新增成功", 1)

    def update(self, tx: Transaction) -> WriteResult:
        """Overwrite the first row carrying ``tx.id``.

        When the id is not in ``tx.category``'s partition the record has
        either changed category or never existed: the record is appended to
        its own partition, then copies in other partitions are removed.
        """
        name = tx.category.value
        try:
            with self._lock:
                headers = self._prepare_partition(tx.category)
                values = self._project(tx, headers)
                for index, raw in enumerate(self._store.fetch_all_rows(name)):
                    if _row_id(raw) == tx.id:
                        self._store.overwrite_row(name, index, values)
                        return WriteResult(True, "更新成功", 1)
                self._store.append_row(name, values)
                moved = 0
                for category in self._existing_categories():
                    if category is not tx.category:
                        moved += self._remove_rows(category.value, tx.id)
        except StoreError as e:
            log.error("Update of %s failed: %s", tx.id, e)
            return WriteResult(False, str(e))
        if moved:
            log.info("Moved %s to '%s'", tx.id, name)
            return WriteResult(True, "更新成功", 1)
        log.info("Update target %s not found, appended to '%s'", tx.id, name)
        return WriteResult(True, "找不到原紀錄，已新增", 1)

    def _existing_categories(self) -> list[TransactionType]:
        existing = set(self._store.partitions())
        return [c for c in CATEGORIES if c.value in existing]

    def _remove_rows(self, name: str, tx_id: str) -> int:
        rows = self._store.fetch_all_rows(name)
        removed = 0
        # Bottom-up so earlier indexes stay valid
        for index in range(len(rows) - 1, -1, -1):
            if _row_id(rows[index]) == tx_id:
                self._store.delete_row(name, index)
                removed += 1
        return removed

    def delete(self, tx_id: str) -> WriteResult:
        """Remove every row with exactly this id, from every partition."""
        tx_id = str(tx_id).strip()
        removed = 0
        try:
            with self._lock:
                for category in self._existing_categories():
                    removed += self._remove_rows(category.value, tx_id)
        except StoreError as e:
            log.error("Delete of %s failed: %s", tx_id, e)
            return WriteResult(False, str(e), removed)
        if not removed:
            log.info("Delete target %s not found", tx_id)
        return WriteResult(True, "刪除成功", removed)

    def batch_insert(self, txs: Iterable[Transaction]) -> WriteResult:
        """Insert one by one; not atomic. ``count`` is the number attempted."""
        attempted = 0
        headers_by_category: dict[TransactionType, list[str]] = {}
        for tx in txs:
            attempted += 1
            try:
                with self._lock:
                    headers = headers_by_category.get(tx.category)
                    if headers is None:
                        headers = self._prepare_partition(tx.category)
                        headers_by_category[tx.category] = headers
                    self._store.append_row(tx.category.value, self._project(tx, headers))
            except StoreError as e:
                log.error("Batch insert stopped at item %d (%s): %s", attempted, tx.id, e)
                return WriteResult(False, str(e), attempted)
        log.info("Batch inserted %d records", attempted)
        return WriteResult(True, f"成功匯入 {attempted} 筆", attempted)
