import threading
import time
from datetime import datetime

import customtkinter as ctk

from models.transaction import Transaction
from services.auth_service import AuthService
from services.export_service import ExportService
from services.report_service import ReportService
from services.transaction_service import TransactionService
from ui.components.login_dialog import LoginDialog
from ui.tabs.batch_tab import BatchTab
from ui.tabs.dashboard_tab import DashboardTab
from ui.tabs.records_tab import RecordsTab
from utils.constants import APP_HEIGHT, APP_NAME, APP_WIDTH
from utils.date_helpers import TAIPEI_TZ
from utils.display_cache import clear_cache, load_cache, save_cache
from utils.logging_setup import get_logger

log = get_logger("warehouse.ui.app")

_TAB_DASHBOARD = "📊 結算總覽"
_TAB_RECORDS = "📄 核銷紀錄"
_TAB_REPAIRS = "🛠️ 維修中心"
_TAB_BATCH = "📥 快速批次"

_IDLE_CHECK_MS = 15_000


class AppWindow(ctk.CTk):
    def __init__(
        self,
        auth_service: AuthService,
        tx_service: TransactionService,
        report_service: ReportService,
        export_service: ExportService,
        date_format: str = "YYYY-MM-DD",
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._auth = auth_service
        self._tx_svc = tx_service
        self._report_svc = report_service
        self._export_svc = export_service
        self._date_format = date_format

        self._transactions: list[Transaction] = []
        self._load_gen = 0
        self._cancel = threading.Event()
        self._last_touch = 0.0

        self.title(APP_NAME)
        self.minsize(APP_WIDTH, APP_HEIGHT)
        self.geometry(f"{APP_WIDTH}x{APP_HEIGHT}")

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=1)

        self._build_top_bar()
        self._build_tabs()

        for sequence in ("<KeyPress>", "<ButtonPress>", "<Motion>", "<MouseWheel>"):
            self.bind_all(sequence, self._on_activity, add="+")

        self.after(200, self._require_login)
        self.after(_IDLE_CHECK_MS, self._check_idle)

    # ── Top bar ──────────────────────────────────────────────────────────────
    def _build_top_bar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray85", "gray15"), corner_radius=0, height=48)
        bar.grid(row=0, column=0, sticky="ew")
        bar.grid_propagate(False)

        ctk.CTkLabel(bar, text=APP_NAME, font=ctk.CTkFont(size=16, weight="bold")).pack(
            side="left", padx=(12, 16), pady=8
        )
        self._user_label = ctk.CTkLabel(bar, text="", text_color="gray60")
        self._user_label.pack(side="left", padx=4)

        ctk.CTkButton(
            bar, text="登出", width=70,
            fg_color="transparent", border_width=1,
            text_color=("gray10", "gray90"),
            command=self._logout,
        ).pack(side="right", padx=(4, 12))
        self._sync_btn = ctk.CTkButton(bar, text="🔄 同步", width=80, command=self.sync)
        self._sync_btn.pack(side="right", padx=4)
        self._sync_label = ctk.CTkLabel(bar, text="", text_color="gray60")
        self._sync_label.pack(side="right", padx=8)

    def _build_tabs(self):
        self._tabview = ctk.CTkTabview(self)
        self._tabview.grid(row=1, column=0, sticky="nsew", padx=8, pady=(0, 8))

        for tab_name in (_TAB_DASHBOARD, _TAB_RECORDS, _TAB_REPAIRS, _TAB_BATCH):
            self._tabview.add(tab_name)
            self._tabview.tab(tab_name).grid_columnconfigure(0, weight=1)
            self._tabview.tab(tab_name).grid_rowconfigure(0, weight=1)

        self._dashboard_tab = DashboardTab(
            self._tabview.tab(_TAB_DASHBOARD),
            report_service=self._report_svc,
            get_transactions=self._get_transactions,
        )
        self._dashboard_tab.grid(row=0, column=0, sticky="nsew")

        self._records_tab = RecordsTab(
            self._tabview.tab(_TAB_RECORDS),
            tx_service=self._tx_svc,
            export_service=self._export_svc,
            get_transactions=self._get_transactions,
            notify_changed=self.sync,
            date_format=self._date_format,
        )
        self._records_tab.grid(row=0, column=0, sticky="nsew")

        self._repairs_tab = RecordsTab(
            self._tabview.tab(_TAB_REPAIRS),
            tx_service=self._tx_svc,
            export_service=self._export_svc,
            get_transactions=self._get_transactions,
            notify_changed=self.sync,
            repairs=True,
            date_format=self._date_format,
        )
        self._repairs_tab.grid(row=0, column=0, sticky="nsew")

        self._batch_tab = BatchTab(
            self._tabview.tab(_TAB_BATCH),
            tx_service=self._tx_svc,
            get_transactions=self._get_transactions,
            notify_changed=self.sync,
            on_complete=lambda: self._tabview.set(_TAB_RECORDS),
            date_format=self._date_format,
        )
        self._batch_tab.grid(row=0, column=0, sticky="nsew")

    def _get_transactions(self) -> list[Transaction]:
        return self._transactions

    def notify_tabs_refresh(self):
        self._dashboard_tab.refresh()
        self._records_tab.refresh()
        self._repairs_tab.refresh()
        self._batch_tab.refresh()

    # ── Session ──────────────────────────────────────────────────────────────
    def _require_login(self):
        dlg = LoginDialog(self, self._auth)
        self.wait_window(dlg)
        if not dlg.saved:
            self.destroy()
            return
        self._user_label.configure(text=f"👤 {self._auth.current_user}")
        self._transactions = load_cache()
        self.notify_tabs_refresh()
        self.sync()

    def _logout(self):
        self._cancel.set()
        self._load_gen += 1
        self._auth.logout()
        self._transactions = []
        clear_cache()
        self._user_label.configure(text="")
        self._sync_label.configure(text="")
        self._sync_btn.configure(state="normal", text="🔄 同步")
        self.notify_tabs_refresh()
        self._tabview.set(_TAB_DASHBOARD)
        self.after(100, self._require_login)

    def _on_activity(self, _event=None):
        # Motion events arrive in bursts; one touch per second is enough
        now = time.monotonic()
        if now - self._last_touch >= 1:
            self._last_touch = now
            self._auth.touch(now)

    def _check_idle(self):
        if self._auth.is_idle_expired():
            log.info("Session idle, logging out")
            self._logout()
        self.after(_IDLE_CHECK_MS, self._check_idle)

    # ── Sync ─────────────────────────────────────────────────────────────────
    def sync(self):
        """Re-read the whole ledger in the background."""
        if not self._auth.is_logged_in:
            return
        self._cancel.set()
        self._cancel = cancel = threading.Event()
        self._load_gen += 1
        gen = self._load_gen
        self._sync_btn.configure(state="disabled", text="同步中…")

        def fetch():
            data = self._tx_svc.sync(cancel)
            self.after(0, lambda: self._on_data_ready(gen, data))

        threading.Thread(target=fetch, daemon=True).start()

    def _on_data_ready(self, gen: int, data: list[Transaction] | None):
        if gen != self._load_gen:
            return  # superseded by a newer load or a logout
        if not self.winfo_exists():
            return
        self._sync_btn.configure(state="normal", text="🔄 同步")
        stamp = datetime.now(TAIPEI_TZ).strftime("%H:%M:%S")
        if data is None:
            # Keep showing the last good list and cache
            self._sync_label.configure(text=f"同步失敗 {stamp}")
            return
        self._transactions = data
        save_cache(data)
        self._sync_label.configure(text=f"最後同步 {stamp}（{len(data)} 筆）")
        self.notify_tabs_refresh()
