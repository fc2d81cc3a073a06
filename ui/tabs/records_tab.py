import customtkinter as ctk

from models.transaction import CATEGORIES, Transaction, TransactionType
from services.export_service import ExportService
from services.report_service import (
    available_years, filter_transactions, material_suggestions, page_count,
    paginate, sort_by_date_desc,
)
from services.transaction_service import TransactionService
from ui.components.confirm_dialog import ConfirmDialog, show_message
from ui.components.date_picker import DatePickerWidget
from ui.components.export_dialog import ExportDialog
from ui.components.repair_form import RepairForm
from ui.components.transaction_form import TransactionForm
from utils.constants import ITEMS_PER_PAGE, MONTHLY_SCOPE_LIMIT, STATUS_FILTERS
from utils.currency import format_currency
from utils.date_helpers import format_display_date, today

_ALL = "全部"
_SCOPE_RECENT = f"最新 {MONTHLY_SCOPE_LIMIT} 筆"
_SCOPE_PAGED = "完整分頁"
_RECORD_CATEGORIES = [c for c in CATEGORIES if c is not TransactionType.REPAIR]

_TYPE_COLORS = {
    TransactionType.INBOUND: "#6366f1",
    TransactionType.USAGE: "#10b981",
    TransactionType.CONSTRUCTION: "#f59e0b",
    TransactionType.REPAIR: "#f43f5e",
}


class RecordsTab(ctk.CTkFrame):
    """Filterable, paginated ledger list.

    ``repairs=False`` shows inbound/usage/construction records (核銷紀錄),
    ``repairs=True`` the repair center (維修中心).
    """

    def __init__(
        self,
        master,
        tx_service: TransactionService,
        export_service: ExportService,
        get_transactions,   # callable → list[Transaction]
        notify_changed,     # callable, re-sync after a write
        repairs: bool = False,
        date_format: str = "YYYY-MM-DD",
        **kwargs,
    ):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._tx_svc = tx_service
        self._export_svc = export_service
        self._get_transactions = get_transactions
        self._notify_changed = notify_changed
        self._repairs = repairs
        self._date_format = date_format
        self._page = 1
        self._filtered: list[Transaction] = []

        self._status_labels = {label: key for key, label in STATUS_FILTERS.items()}
        self._status_var = ctk.StringVar(value=STATUS_FILTERS["all"])
        self._category_var = ctk.StringVar(value=_ALL)
        self._material_var = ctk.StringVar(value=_ALL)
        self._scope_var = ctk.StringVar(value=_SCOPE_PAGED)
        self._search_var = ctk.StringVar()
        self._search_var.trace_add("write", lambda *_: self._reset_and_load())

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(3, weight=1)

        self._build_filter_bar()
        self._build_search_row()
        self._build_header()
        self._build_list()
        self._build_pager()
        self.refresh()

    def refresh(self):
        self._load()

    def _reset_and_load(self):
        self._page = 1
        self._load()

    # ── Filter bar ──────────────────────────────────────────────────────────
    def _build_filter_bar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, sticky="ew", padx=8, pady=(8, 0))

        ctk.CTkLabel(bar, text="日期:").pack(side="left", padx=(12, 4), pady=8)
        self._start_picker = DatePickerWidget(bar, date_format=self._date_format, allow_empty=True)
        self._start_picker.pack(side="left")
        ctk.CTkLabel(bar, text="～").pack(side="left", padx=4)
        self._end_picker = DatePickerWidget(bar, date_format=self._date_format, allow_empty=True)
        self._end_picker.pack(side="left")
        ctk.CTkButton(bar, text="套用", width=50, command=self._reset_and_load).pack(
            side="left", padx=(6, 12)
        )

        ctk.CTkComboBox(
            bar, values=list(STATUS_FILTERS.values()), variable=self._status_var,
            width=130, state="readonly", command=lambda _: self._reset_and_load(),
        ).pack(side="left", padx=4)

        if self._repairs:
            self._material_combo = ctk.CTkComboBox(
                bar, values=[_ALL], variable=self._material_var,
                width=160, state="readonly", command=lambda _: self._reset_and_load(),
            )
            self._material_combo.pack(side="left", padx=4)
        else:
            ctk.CTkSegmentedButton(
                bar, values=[_ALL] + [c.value for c in _RECORD_CATEGORIES],
                variable=self._category_var, command=lambda _: self._reset_and_load(),
            ).pack(side="left", padx=4)

        ctk.CTkButton(bar, text="📥 匯出", width=80, command=self._open_export).pack(
            side="right", padx=(4, 8)
        )
        ctk.CTkButton(
            bar, text="+ 登記維修" if self._repairs else "+ 新增紀錄", width=100,
            command=lambda: self._open_form(None),
        ).pack(side="right", padx=4)

    def _build_search_row(self):
        row = ctk.CTkFrame(self, fg_color="transparent")
        row.grid(row=1, column=0, sticky="ew", padx=8, pady=(6, 0))
        row.grid_columnconfigure(0, weight=1)
        ctk.CTkEntry(
            row, textvariable=self._search_var,
            placeholder_text="搜尋料件、PN、SN 或機台編號...",
        ).grid(row=0, column=0, sticky="ew")
        ctk.CTkSegmentedButton(
            row, values=[_SCOPE_RECENT, _SCOPE_PAGED],
            variable=self._scope_var, command=lambda _: self._reset_and_load(),
        ).grid(row=0, column=1, padx=(8, 0))
        self._count_label = ctk.CTkLabel(row, text="", text_color="gray60", width=110)
        self._count_label.grid(row=0, column=2, padx=(8, 0))

    # ── Column headers ───────────────────────────────────────────────────────
    def _columns(self):
        if self._repairs:
            return [("日期", 85), ("狀態", 70), ("維修零件/主體", 170), ("機台", 90),
                    ("SN", 110), ("故障原因", 150), ("總額", 90), ("人員", 70), ("", 100)]
        return [("日期", 85), ("類別", 50), ("料件名稱", 170), ("PN", 110), ("機台", 90),
                ("數量", 50), ("單價", 80), ("總額", 90), ("人員", 70), ("", 100)]

    def _build_header(self):
        hdr = ctk.CTkFrame(self, fg_color=("gray82", "gray22"), corner_radius=0)
        hdr.grid(row=2, column=0, sticky="ew", padx=8, pady=(6, 0))
        for i, (label, width) in enumerate(self._columns()):
            ctk.CTkLabel(
                hdr, text=label, width=width, anchor="w", font=ctk.CTkFont(weight="bold"),
            ).grid(row=0, column=i, padx=4, pady=4, sticky="w")

    def _build_list(self):
        self._scroll = ctk.CTkScrollableFrame(self)
        self._scroll.grid(row=3, column=0, sticky="nsew", padx=8, pady=(0, 4))
        self._scroll.grid_columnconfigure(0, weight=1)

    def _build_pager(self):
        pager = ctk.CTkFrame(self, fg_color="transparent")
        pager.grid(row=4, column=0, pady=(0, 8))
        ctk.CTkButton(pager, text="◀", width=28, command=lambda: self._go(-1)).pack(side="left")
        self._page_label = ctk.CTkLabel(pager, text="", width=90, anchor="center")
        self._page_label.pack(side="left", padx=8)
        ctk.CTkButton(pager, text="▶", width=28, command=lambda: self._go(1)).pack(side="left")
        self._pager = pager

    def _go(self, step: int):
        pages = page_count(len(self._filtered), ITEMS_PER_PAGE)
        self._page = min(max(self._page + step, 1), pages)
        self._load()

    # ── Data ─────────────────────────────────────────────────────────────────
    def _filter(self, txs: list[Transaction]) -> list[Transaction]:
        if self._repairs:
            categories = [TransactionType.REPAIR]
            material = self._material_var.get()
            material = None if material == _ALL else material
            include_scrapped = True
        else:
            chosen = TransactionType.parse(self._category_var.get())
            categories = [chosen] if chosen else _RECORD_CATEGORIES
            material = None
            include_scrapped = False
        return sort_by_date_desc(filter_transactions(
            txs,
            start_date=self._start_picker.get(),
            end_date=self._end_picker.get(),
            categories=categories,
            keyword=self._search_var.get(),
            status=self._status_labels.get(self._status_var.get(), "all"),
            material_name=material,
            include_scrapped=include_scrapped,
        ))

    def _load(self):
        txs = self._get_transactions()
        if self._repairs:
            names = sorted({t.material_name for t in txs if t.is_repair})
            self._material_combo.configure(values=[_ALL] + names)

        self._filtered = self._filter(txs)
        self._count_label.configure(text=f"共 {len(self._filtered)} 筆資料")

        if self._scope_var.get() == _SCOPE_RECENT:
            visible = self._filtered[:MONTHLY_SCOPE_LIMIT]
            self._pager.grid_remove()
        else:
            pages = page_count(len(self._filtered), ITEMS_PER_PAGE)
            self._page = min(self._page, pages)
            visible = paginate(self._filtered, self._page, ITEMS_PER_PAGE)
            self._page_label.configure(text=f"{self._page} / {pages}")
            self._pager.grid()

        for w in self._scroll.winfo_children():
            w.destroy()
        if not visible:
            ctk.CTkLabel(self._scroll, text="查無符合條件的紀錄", text_color="gray60").grid(
                row=0, column=0, pady=20
            )
            return
        for idx, tx in enumerate(visible):
            self._add_row(idx, tx)

    def _add_row(self, idx: int, tx: Transaction):
        bg = ("gray92", "gray17") if idx % 2 == 0 else ("gray88", "gray21")
        row = ctk.CTkFrame(self._scroll, fg_color=bg, corner_radius=4)
        row.grid(row=idx, column=0, sticky="ew", pady=1, padx=2)
        widths = [w for _, w in self._columns()]

        if self._repairs:
            if tx.is_scrapped:
                status, color = "報廢", "#F43F5E"
            elif tx.is_repairing:
                status, color = "維修中", "#F59E0B"
            else:
                status, color = "已完修", "#10B981"
            cells = [
                (format_display_date(tx.date, self._date_format), None),
                (status, color),
                (tx.material_name, None),
                (f"{tx.machine_category} {tx.machine_number}".strip(), None),
                (tx.serial_number or "—", None),
                (tx.fault_reason or "—", None),
                (format_currency(tx.total), None),
                (tx.operator, "gray60"),
            ]
        else:
            name = tx.material_name
            if tx.category is TransactionType.INBOUND and not tx.is_received:
                name = f"⏳ {name}"
            cells = [
                (format_display_date(tx.date, self._date_format), None),
                (tx.category.value, _TYPE_COLORS[tx.category]),
                (name, None),
                (tx.material_number or "—", None),
                (f"{tx.machine_category} {tx.machine_number}".strip(), None),
                (str(tx.quantity), None),
                (format_currency(tx.unit_price), None),
                (format_currency(tx.total), None),
                (tx.operator, "gray60"),
            ]

        for col, ((text, color), width) in enumerate(zip(cells, widths)):
            kwargs = {"text_color": color} if color else {}
            ctk.CTkLabel(row, text=text, width=width, anchor="w", **kwargs).grid(
                row=0, column=col, padx=4, pady=4
            )

        acts = ctk.CTkFrame(row, fg_color="transparent")
        acts.grid(row=0, column=len(cells), padx=(4, 6))
        ctk.CTkButton(
            acts, text="編輯", width=44, height=24,
            command=lambda t=tx: self._open_form(t),
        ).pack(side="left", padx=2)
        ctk.CTkButton(
            acts, text="刪除", width=44, height=24,
            fg_color="#F43F5E", hover_color="#E11D48",
            command=lambda t=tx: self._delete_tx(t),
        ).pack(side="left")

    # ── Actions ──────────────────────────────────────────────────────────────
    def _open_form(self, tx: Transaction | None):
        txs = self._get_transactions()
        form_cls = RepairForm if self._repairs else TransactionForm
        hints = material_suggestions(txs, TransactionType.REPAIR if self._repairs else None)
        form = form_cls(
            self.winfo_toplevel(), self._tx_svc, txs, hints,
            transaction=tx, date_format=self._date_format,
        )
        self.wait_window(form)
        if form.saved:
            self._notify_changed()

    def _delete_tx(self, tx: Transaction):
        dlg = ConfirmDialog(
            self.winfo_toplevel(), "確認刪除",
            f"確定要刪除「{tx.material_name}」({tx.date}) 這筆紀錄嗎？此動作無法復原。",
        )
        if not dlg.result:
            return
        if not self._tx_svc.delete(tx.id, tx.category):
            show_message(self.winfo_toplevel(), "刪除失敗", "刪除失敗，請檢查連線後重試")
            return
        self._notify_changed()

    def _open_export(self):
        txs = self._get_transactions()
        dlg = ExportDialog(
            self.winfo_toplevel(), self._export_svc, txs, self._filtered,
            years=available_years(txs, today()), repairs=self._repairs,
        )
        self.wait_window(dlg)
