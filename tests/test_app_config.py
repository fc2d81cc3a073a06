import pytest

from utils.app_config import (
    config_dir, get_master_secret, get_request_timeout, get_store_path,
    get_web_store_url, load_config, save_config, set_master_secret, set_store_path,
)


def test_load_config_never_raises():
    assert load_config() == {}
    (config_dir() / "config.json").write_text("[broken", encoding="utf-8")
    assert load_config() == {}


def test_store_path_round_trip(tmp_path):
    set_store_path(str(tmp_path / "ledger.xlsx"))
    assert get_store_path() == str(tmp_path / "ledger.xlsx")
    set_store_path(None)
    assert get_store_path() is None


def test_web_store_url_requires_https(monkeypatch):
    save_config({"web_store_url": "http://insecure.example.com"})
    assert get_web_store_url() is None
    monkeypatch.setenv("WAREHOUSE_STORE_URL", "https://script.example.com/exec")
    assert get_web_store_url() == "https://script.example.com/exec"


def test_request_timeout_falls_back():
    assert get_request_timeout(30) == 30
    save_config({"request_timeout": "oops"})
    assert get_request_timeout(30) == 30
    save_config({"request_timeout": 12})
    assert get_request_timeout(30) == 12.0


def test_master_secret_env_wins(monkeypatch):
    set_master_secret("from-config")
    assert get_master_secret() != "from-config"
    monkeypatch.delenv("WAREHOUSE_MASTER_PASSWORD")
    assert get_master_secret() == "from-config"
    with pytest.raises(ValueError):
        set_master_secret("")
