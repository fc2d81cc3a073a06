import argparse
import getpass
import os
import sys

import customtkinter as ctk

# Ensure project root is on sys.path when run directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from database.sheet_store import SheetStore, StoreError
from database.transaction_dao import TransactionDAO
from database.web_store import SheetsWebStore
from database.workbook_store import WorkbookStore

from services.auth_service import AuthService
from services.export_service import ExportService
from services.report_service import ReportService
from services.transaction_service import TransactionService

from ui.app_window import AppWindow
from utils.app_config import (
    config_dir, get_appearance_mode, get_request_timeout, get_store_path,
    get_web_store_url, set_master_secret,
)
from utils.constants import REQUEST_TIMEOUT_SECONDS, STORE_FILE
from utils.logging_setup import configure_logging, get_logger

log = get_logger("warehouse.main")


def _parse_args(argv=None):
    ap = argparse.ArgumentParser(description="倉儲月結管理系統")
    ap.add_argument("--set-password", action="store_true",
                    help="Set the shared login password and exit")
    ap.add_argument("--store", default="",
                    help="Path of the .xlsx ledger (overrides the configured one)")
    ap.add_argument("--log-level", default=None,
                    help="DEBUG, INFO, WARNING, ... (default: WAREHOUSE_LOG_LEVEL or INFO)")
    return ap.parse_args(argv)


def _set_password() -> int:
    secret = getpass.getpass("New system password: ")
    if not secret or secret != getpass.getpass("Repeat: "):
        print("Passwords do not match or are empty.", file=sys.stderr)
        return 1
    set_master_secret(secret)
    print("Password updated. It takes effect on the next start.")
    return 0


def open_store(store_path: str = "") -> SheetStore:
    """Web endpoint when one is configured, otherwise the local workbook."""
    url = get_web_store_url()
    if url and not store_path:
        log.info("Using web store %s", url)
        return SheetsWebStore(url, timeout=get_request_timeout(REQUEST_TIMEOUT_SECONDS))
    path = store_path or get_store_path() or str(config_dir() / STORE_FILE)
    log.info("Using workbook %s", path)
    return WorkbookStore(path)


def main(argv=None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level)

    if args.set_password:
        return _set_password()

    # ── Store ────────────────────────────────────────────────────────────────
    try:
        store = open_store(args.store)
    except (StoreError, ValueError) as e:
        log.error("Cannot open the ledger: %s", e)
        print(f"Cannot open the ledger: {e}", file=sys.stderr)
        return 1

    # ── DAO & services ───────────────────────────────────────────────────────
    tx_dao = TransactionDAO(store)
    auth_svc = AuthService()
    tx_svc = TransactionService(tx_dao, auth_svc)
    report_svc = ReportService()
    export_svc = ExportService()

    # ── Appearance ───────────────────────────────────────────────────────────
    ctk.set_appearance_mode(get_appearance_mode())
    ctk.set_default_color_theme("blue")

    # ── Launch UI ────────────────────────────────────────────────────────────
    app = AppWindow(
        auth_service=auth_svc,
        tx_service=tx_svc,
        report_service=report_svc,
        export_service=export_svc,
    )
    app.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
