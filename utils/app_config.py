"""Bootstrap configuration. Zero imports from the rest of the app.

Stores settings that must be known before the store is opened (workbook path,
web store URL) and the shared login secret. Config lives in
~/.warehouse_settlement/config.json; environment variables override it.
"""
import json
import os
from pathlib import Path

CONFIG_DIR = Path.home() / ".warehouse_settlement"

ENV_MASTER_PASSWORD = "WAREHOUSE_MASTER_PASSWORD"
ENV_STORE_URL = "WAREHOUSE_STORE_URL"


def config_dir() -> Path:
    """Resolved at call time so tests can redirect it via WAREHOUSE_CONFIG_DIR."""
    override = os.environ.get("WAREHOUSE_CONFIG_DIR")
    return Path(override) if override else CONFIG_DIR


def _config_file() -> Path:
    return config_dir() / "config.json"


def load_config() -> dict:
    """Returns {} on missing or corrupt file; never raises."""
    try:
        with open(_config_file(), "r", encoding="utf-8") as f:
            return json.load(f)
    except Exception:
        return {}


def save_config(config: dict) -> None:
    """Creates the config dir if needed; atomic write via .tmp + os.replace()."""
    folder = config_dir()
    folder.mkdir(parents=True, exist_ok=True)
    target = _config_file()
    tmp = target.with_suffix(".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2, ensure_ascii=False)
        os.replace(tmp, target)
    except Exception:
        try:
            tmp.unlink(missing_ok=True)
        except Exception:
            pass
        raise


def get_store_path() -> str | None:
    """Return config["store_path"] or None if not set."""
    return load_config().get("store_path")


def set_store_path(path: str | None) -> None:
    config = load_config()
    if path is None:
        config.pop("store_path", None)
    else:
        config["store_path"] = path
    save_config(config)


def get_web_store_url() -> str | None:
    """Env override first, then config. Only https URLs are accepted."""
    url = os.environ.get(ENV_STORE_URL) or load_config().get("web_store_url")
    if not url or not str(url).strip().startswith("https://"):
        return None
    return str(url).strip()


def get_request_timeout(default: float) -> float:
    try:
        return float(load_config().get("request_timeout", default))
    except (TypeError, ValueError):
        return default


def get_appearance_mode() -> str:
    return load_config().get("appearance_mode", "system")


def get_master_secret() -> str | None:
    """Shared login secret: env var first, then config. None when unset."""
    secret = os.environ.get(ENV_MASTER_PASSWORD)
    if secret:
        return secret
    return load_config().get("master_password") or None


def set_master_secret(secret: str) -> None:
    """Administrative rotation of the shared secret. Takes effect on next start."""
    if not secret:
        raise ValueError("Secret must not be empty.")
    config = load_config()
    config["master_password"] = secret
    save_config(config)
