"""Last fetched ledger, kept on disk so the window can paint before the first
sync finishes. Never authoritative: the store is always re-read on demand."""
import json
from dataclasses import asdict

from models.transaction import Transaction, TransactionType
from utils.app_config import config_dir
from utils.logging_setup import get_logger

log = get_logger("warehouse.display_cache")


def _cache_file():
    return config_dir() / "cache.json"


def save_cache(transactions: list[Transaction]) -> None:
    rows = []
    for tx in transactions:
        row = asdict(tx)
        row["category"] = tx.category.value
        rows.append(row)
    try:
        folder = config_dir()
        folder.mkdir(parents=True, exist_ok=True)
        with open(_cache_file(), "w", encoding="utf-8") as f:
            json.dump(rows, f, ensure_ascii=False)
    except OSError as e:
        log.warning("Could not write display cache: %s", e)


def load_cache() -> list[Transaction]:
    """Returns [] when the cache is missing or unreadable."""
    try:
        with open(_cache_file(), "r", encoding="utf-8") as f:
            rows = json.load(f)
    except (OSError, ValueError):
        return []
    result = []
    for row in rows if isinstance(rows, list) else []:
        try:
            category = TransactionType.parse(row.get("category"))
            if category is None:
                continue
            row["category"] = category
            result.append(Transaction(**row))
        except (TypeError, AttributeError):
            continue
    return result


def clear_cache() -> None:
    try:
        _cache_file().unlink(missing_ok=True)
    except OSError as e:
        log.warning("Could not remove display cache: %s", e)
