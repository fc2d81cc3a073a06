import threading
from dataclasses import replace

from database.transaction_dao import TransactionDAO
from models.transaction import Transaction, TransactionType
from services.auth_service import AuthService
from services.derivation import apply_category_rules
from utils.logging_setup import get_logger

log = get_logger("warehouse.transaction_service")


class TransactionService:
    """What the UI calls. Every operation requires a logged-in session and
    reports success as a plain bool."""

    def __init__(self, tx_dao: TransactionDAO, auth: AuthService):
        self._dao = tx_dao
        self._auth = auth

    def _stamp(self, tx: Transaction) -> Transaction:
        """Operator always comes from the session, never from the form."""
        return apply_category_rules(replace(tx, operator=self._auth.current_user))

    def fetch_all(self, cancel: threading.Event | None = None) -> list[Transaction]:
        if not self._auth.is_logged_in:
            return []
        return self._dao.fetch_all(cancel=cancel)

    def sync(self, cancel: threading.Event | None = None) -> list[Transaction] | None:
        """None when the read failed or was cancelled; the caller keeps what it has."""
        if not self._auth.is_logged_in:
            return None
        return self._dao.fetch(cancel=cancel)

    def insert(self, tx: Transaction) -> bool:
        if not self._auth.is_logged_in:
            return False
        result = self._dao.insert(self._stamp(tx))
        if not result.ok:
            log.error("Insert failed: %s", result.message)
        return result.ok

    def update(self, tx: Transaction) -> bool:
        if not self._auth.is_logged_in:
            return False
        result = self._dao.update(self._stamp(tx))
        if not result.ok:
            log.error("Update failed: %s", result.message)
        return result.ok

    def save(self, tx: Transaction, existing_ids: set[str]) -> bool:
        """Update when the id is already known, insert otherwise."""
        if tx.id in existing_ids:
            return self.update(tx)
        return self.insert(tx)

    def delete(self, tx_id: str, category: TransactionType | None = None) -> bool:
        # The store scans every partition; category is only for the log line
        if not self._auth.is_logged_in:
            return False
        result = self._dao.delete(tx_id)
        if not result.ok:
            log.error("Delete of %s (%s) failed: %s", tx_id,
                      category.value if category else "?", result.message)
        return result.ok

    def batch_insert(self, txs: list[Transaction]) -> bool:
        if not self._auth.is_logged_in or not txs:
            return False
        result = self._dao.batch_insert([self._stamp(tx) for tx in txs])
        if not result.ok:
            log.error("Batch insert failed after %d items: %s", result.count, result.message)
        return result.ok
