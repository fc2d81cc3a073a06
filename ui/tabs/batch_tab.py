import customtkinter as ctk

from models.transaction import CATEGORIES, Transaction, TransactionType, new_transaction_id
from services.report_service import MaterialHint, material_suggestions
from services.transaction_service import TransactionService
from ui.components.date_picker import DatePickerWidget
from ui.components.transaction_form import MaterialNameEntry, read_number, read_quantity
from utils.constants import ACCOUNT_CATEGORIES, DEFAULT_ACCOUNT_CATEGORY, MACHINE_CATEGORIES
from utils.currency import format_currency
from utils.date_helpers import today_str
from utils.logging_setup import get_logger

log = get_logger("warehouse.ui.batch")

_TYPE_VALUES = [c.value for c in CATEGORIES]


def _blank_row(date: str = "", category: str = TransactionType.USAGE.value,
               account: str = DEFAULT_ACCOUNT_CATEGORY,
               machine_category: str = MACHINE_CATEGORIES[0]) -> dict:
    return {
        "date": date or today_str(),
        "category": category,
        "account_category": account,
        "material_name": "",
        "material_number": "",
        "machine_category": machine_category,
        "machine_number": "",
        "serial_number": "",
        "fault_reason": "",
        "quantity": "1",
        "unit_price": "0",
        "is_received": False,
    }


class _BatchRow(ctk.CTkFrame):
    """One editable line of the batch sheet."""

    def __init__(self, master, values: dict, hints: dict[str, MaterialHint],
                 on_change, on_duplicate, on_remove, date_format: str, **kwargs):
        super().__init__(master, corner_radius=8, **kwargs)
        self._on_change = on_change

        self._date_picker = DatePickerWidget(self, initial_date=values["date"], date_format=date_format)
        self._date_picker.grid(row=0, column=0, padx=(8, 4), pady=(8, 2), sticky="w")

        self._type_var = ctk.StringVar(value=values["category"])
        ctk.CTkComboBox(
            self, values=_TYPE_VALUES, variable=self._type_var, width=90,
            state="readonly", command=lambda _: self._on_type_change(),
        ).grid(row=0, column=1, padx=4, pady=(8, 2))

        self._account_var = ctk.StringVar(value=values["account_category"])
        self._account_combo = ctk.CTkComboBox(
            self, values=ACCOUNT_CATEGORIES, variable=self._account_var, width=60, state="readonly",
        )
        self._account_combo.grid(row=0, column=2, padx=4, pady=(8, 2))

        self._name_entry = MaterialNameEntry(self, hints, self._apply_hint, width=170)
        self._name_entry.set(values["material_name"])
        self._name_entry.grid(row=0, column=3, padx=4, pady=(8, 2))

        self._vars = {}
        for col, (key, placeholder, width) in enumerate(
            (("material_number", "PN", 110), ("machine_number", "機台 ID", 90)), start=4,
        ):
            var = ctk.StringVar(value=values[key])
            ctk.CTkEntry(self, textvariable=var, placeholder_text=placeholder, width=width).grid(
                row=0, column=col, padx=4, pady=(8, 2)
            )
            self._vars[key] = var

        self._machine_cat_var = ctk.StringVar(value=values["machine_category"])
        ctk.CTkComboBox(
            self, values=MACHINE_CATEGORIES, variable=self._machine_cat_var, width=80,
        ).grid(row=0, column=6, padx=4, pady=(8, 2))

        for col, (key, width) in enumerate((("quantity", 50), ("unit_price", 80)), start=7):
            var = ctk.StringVar(value=values[key])
            var.trace_add("write", lambda *_: self._on_change())
            ctk.CTkEntry(self, textvariable=var, width=width, justify="right").grid(
                row=0, column=col, padx=4, pady=(8, 2)
            )
            self._vars[key] = var

        acts = ctk.CTkFrame(self, fg_color="transparent")
        acts.grid(row=0, column=9, padx=(4, 8), pady=(8, 2))
        ctk.CTkButton(acts, text="📋", width=32, command=lambda: on_duplicate(self)).pack(side="left", padx=2)
        ctk.CTkButton(
            acts, text="🗑️", width=32, fg_color="#F43F5E", hover_color="#E11D48",
            command=lambda: on_remove(self),
        ).pack(side="left")

        # Second line: inbound receipt or repair details
        self._extra = ctk.CTkFrame(self, fg_color="transparent")
        self._extra.grid(row=1, column=0, columnspan=10, padx=8, pady=(0, 8), sticky="ew")
        self._received_var = ctk.BooleanVar(value=values["is_received"])
        self._received_check = ctk.CTkCheckBox(self._extra, text="已收貨", variable=self._received_var)
        self._repair_fields = ctk.CTkFrame(self._extra, fg_color="transparent")
        for key, placeholder, width in (("serial_number", "SN", 130),
                                        ("fault_reason", "故障原因 (必填)", 360)):
            var = ctk.StringVar(value=values[key])
            ctk.CTkEntry(self._repair_fields, textvariable=var, placeholder_text=placeholder,
                         width=width).pack(side="left", padx=(0, 6))
            self._vars[key] = var

        self._on_type_change()

    @property
    def category(self) -> TransactionType:
        return TransactionType.parse(self._type_var.get()) or TransactionType.USAGE

    def _on_type_change(self):
        category = self.category
        self._received_check.pack_forget()
        self._repair_fields.pack_forget()
        if category is TransactionType.INBOUND:
            self._received_check.pack(side="left")
        elif category is TransactionType.REPAIR:
            self._repair_fields.pack(side="left")
        self._account_combo.configure(
            state="disabled" if category is TransactionType.REPAIR else "readonly"
        )

    def _apply_hint(self, hint: MaterialHint):
        if hint.material_number:
            self._vars["material_number"].set(hint.material_number)
        if hint.machine_category:
            self._machine_cat_var.set(hint.machine_category)

    def snapshot(self) -> dict:
        values = {key: var.get() for key, var in self._vars.items()}
        values.update(
            date=self._date_picker.get() or today_str(),
            category=self._type_var.get(),
            account_category=self._account_var.get(),
            material_name=self._name_entry.get(),
            machine_category=self._machine_cat_var.get(),
            is_received=self._received_var.get(),
        )
        return values

    def line_total(self) -> float:
        try:
            qty = read_quantity(self._vars["quantity"].get())
            price = read_number(self._vars["unit_price"].get(), "單價")
        except ValueError:
            return 0
        return (qty or 1) * price

    def is_blank(self) -> bool:
        return not self._name_entry.get().strip()

    def to_transaction(self, line_no: int) -> Transaction:
        """Raises ValueError naming the line when an input is invalid."""
        category = self.category
        values = self.snapshot()
        if not self._date_picker.is_valid():
            raise ValueError(f"第 {line_no} 列：日期格式錯誤")
        if category is TransactionType.REPAIR and not values["fault_reason"].strip():
            raise ValueError(f"第 {line_no} 列：請填寫故障原因")
        try:
            quantity = read_quantity(values["quantity"])
            unit_price = read_number(values["unit_price"], "單價")
        except ValueError as e:
            raise ValueError(f"第 {line_no} 列：{e}")
        return Transaction(
            id=new_transaction_id(category, batch=True),
            date=values["date"],
            category=category,
            material_name=values["material_name"].strip(),
            account_category=(
                "" if category is TransactionType.REPAIR
                else values["account_category"] or DEFAULT_ACCOUNT_CATEGORY
            ),
            material_number=values["material_number"].strip(),
            machine_category=values["machine_category"].strip(),
            machine_number=values["machine_number"].strip(),
            serial_number=values["serial_number"].strip(),
            quantity=quantity,
            unit_price=unit_price,
            fault_reason=values["fault_reason"].strip(),
            is_received=values["is_received"],
        )


class BatchTab(ctk.CTkFrame):
    """快速批次: several records of mixed categories submitted in one call."""

    def __init__(
        self,
        master,
        tx_service: TransactionService,
        get_transactions,
        notify_changed,
        on_complete=None,
        date_format: str = "YYYY-MM-DD",
        **kwargs,
    ):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._tx_svc = tx_service
        self._get_transactions = get_transactions
        self._notify_changed = notify_changed
        self._on_complete = on_complete
        self._date_format = date_format
        self._rows: list[_BatchRow] = []
        self._hints: dict[str, MaterialHint] = {}

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=1)

        self._build_header()
        self._scroll = ctk.CTkScrollableFrame(self, fg_color="transparent")
        self._scroll.grid(row=1, column=0, sticky="nsew", padx=8, pady=(0, 8))
        self._scroll.grid_columnconfigure(0, weight=1)

        self.refresh()

    def _build_header(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, sticky="ew", padx=8, pady=8)
        bar.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(bar, text="⚡ 智慧批次新增", font=ctk.CTkFont(size=16, weight="bold")).grid(
            row=0, column=0, padx=12, pady=(8, 0), sticky="w"
        )
        self._count_label = ctk.CTkLabel(bar, text="", text_color="gray60")
        self._count_label.grid(row=1, column=0, padx=12, pady=(0, 8), sticky="w")

        self._total_label = ctk.CTkLabel(bar, text="", font=ctk.CTkFont(size=18, weight="bold"),
                                         text_color="#6366f1")
        self._total_label.grid(row=0, column=1, rowspan=2, padx=12, sticky="e")

        self._add_btn = ctk.CTkButton(bar, text="+ 新增空白列", width=110, command=self._add_row)
        self._add_btn.grid(row=0, column=2, rowspan=2, padx=4)
        self._submit_btn = ctk.CTkButton(
            bar, text="🚀 開始同步", width=140,
            fg_color="#10B981", hover_color="#059669", command=self._on_submit,
        )
        self._submit_btn.grid(row=0, column=3, rowspan=2, padx=(4, 12))

        self._status_var = ctk.StringVar()
        ctk.CTkLabel(bar, textvariable=self._status_var, text_color="gray60").grid(
            row=2, column=0, columnspan=4, padx=12, pady=(0, 6), sticky="w"
        )

    def refresh(self):
        """Reload material suggestions; rows being edited are kept."""
        self._hints = material_suggestions(self._get_transactions())
        self._render([r.snapshot() for r in self._rows] or [_blank_row()])

    def _render(self, rows: list[dict]):
        for r in self._rows:
            r.destroy()
        self._rows = []
        for idx, values in enumerate(rows):
            row = _BatchRow(
                self._scroll, values, self._hints,
                on_change=self._update_summary,
                on_duplicate=self._duplicate_row,
                on_remove=self._remove_row,
                date_format=self._date_format,
                fg_color=("gray92", "gray17") if idx % 2 == 0 else ("gray88", "gray21"),
            )
            row.grid(row=idx, column=0, sticky="ew", pady=3)
            self._rows.append(row)
        self._update_summary()

    def _update_summary(self):
        self._count_label.configure(text=f"目前準備同步 {len(self._rows)} 筆紀錄")
        total = sum(r.line_total() for r in self._rows)
        self._total_label.configure(text=f"預估總計 {format_currency(total)}")

    # New lines go on top and inherit date / type / account / machine category
    def _add_row(self):
        snapshots = [r.snapshot() for r in self._rows]
        first = snapshots[0] if snapshots else _blank_row()
        fresh = _blank_row(first["date"], first["category"], first["account_category"],
                           first["machine_category"])
        self._render([fresh] + snapshots)

    def _duplicate_row(self, row: _BatchRow):
        snapshots = [r.snapshot() for r in self._rows]
        idx = self._rows.index(row)
        snapshots.insert(idx, dict(snapshots[idx]))
        self._render(snapshots)

    def _remove_row(self, row: _BatchRow):
        if len(self._rows) == 1:
            return
        snapshots = [r.snapshot() for r in self._rows]
        del snapshots[self._rows.index(row)]
        self._render(snapshots)

    def _set_busy(self, busy: bool):
        state = "disabled" if busy else "normal"
        self._add_btn.configure(state=state)
        self._submit_btn.configure(state=state, text="同步中…" if busy else "🚀 開始同步")

    def _on_submit(self):
        filled = [(i + 1, r) for i, r in enumerate(self._rows) if not r.is_blank()]
        if not filled:
            self._status_var.set("⚠️ 請至少填寫一列料件名稱")
            return
        try:
            txs = [row.to_transaction(line_no) for line_no, row in filled]
        except ValueError as e:
            self._status_var.set(f"⚠️ {e}")
            return

        self._set_busy(True)
        self._status_var.set(f"📡 同步中 ({len(txs)} 筆)…")
        self.update_idletasks()
        ok = self._tx_svc.batch_insert(txs)
        self._set_busy(False)
        if not ok:
            self._status_var.set("❌ 同步失敗，請稍後再試")
            return

        log.info("Batch of %d record(s) submitted", len(txs))
        self._status_var.set("✅ 同步完成！")
        first = self._rows[0].snapshot()
        self._render([_blank_row(first["date"], first["category"], first["account_category"],
                                 first["machine_category"])])
        self._notify_changed()
        if self._on_complete:
            self.after(500, self._on_complete)
