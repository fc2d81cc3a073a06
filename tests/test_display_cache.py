from conftest import make_tx
from models.transaction import TransactionType
from utils.app_config import config_dir
from utils.display_cache import clear_cache, load_cache, save_cache


def test_round_trip_through_cache():
    txs = [make_tx(), make_tx(id="RP1", category=TransactionType.REPAIR, is_scrapped=True)]
    save_cache(txs)
    assert load_cache() == txs


def test_missing_or_corrupt_cache_is_empty():
    assert load_cache() == []
    (config_dir() / "cache.json").write_text("{not json", encoding="utf-8")
    assert load_cache() == []


def test_unknown_rows_are_skipped():
    (config_dir() / "cache.json").write_text(
        '[{"category": "???"}, {"category": "用料", "bogus": 1}]', encoding="utf-8"
    )
    assert load_cache() == []


def test_clear_cache():
    save_cache([make_tx()])
    clear_cache()
    assert load_cache() == []
    clear_cache()
