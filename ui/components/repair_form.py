import customtkinter as ctk

from models.transaction import Transaction, TransactionType, new_transaction_id
from services.report_service import MaterialHint
from services.transaction_service import TransactionService
from ui.components.confirm_dialog import center_on_parent
from ui.components.date_picker import DatePickerWidget
from ui.components.transaction_form import MaterialNameEntry, read_number, read_quantity
from utils.constants import MACHINE_CATEGORIES
from utils.currency import format_currency
from utils.date_helpers import today_str


class RepairForm(ctk.CTkToplevel):
    """Register or edit a repair. Marking it scrapped zeroes the cost and
    clears the repair/install dates."""

    def __init__(
        self,
        master,
        tx_service: TransactionService,
        existing: list[Transaction],
        material_hints: dict[str, MaterialHint],
        transaction: Transaction | None = None,
        date_format: str = "YYYY-MM-DD",
        **kwargs,
    ):
        super().__init__(master, **kwargs)
        self._tx_svc = tx_service
        self._existing_ids = {t.id for t in existing}
        self._hints = material_hints
        self._transaction = transaction
        self._date_format = date_format
        self.saved = False

        self.title("編輯維修紀錄" if transaction else "登記維修")
        self.resizable(False, False)
        self.grid_columnconfigure((1, 3), weight=1)

        self._build(transaction)

        self.transient(master)
        self.grab_set()
        center_on_parent(self)

    def _field(self, text, row, col, widget):
        ctk.CTkLabel(self, text=text).grid(row=row, column=col, padx=(16, 8), pady=4, sticky="e")
        widget.grid(row=row, column=col + 1, padx=(0, 16), pady=4, sticky="ew")
        return widget

    def _text(self, value="", width=180):
        var = ctk.StringVar(value=value)
        return var, ctk.CTkEntry(self, textvariable=var, width=width)

    def _build(self, tx: Transaction | None):
        self._date_picker = self._field("單據日期:", 0, 0, DatePickerWidget(
            self, initial_date=tx.date if tx else today_str(), date_format=self._date_format,
        ))
        self._machine_cat_var = ctk.StringVar(
            value=tx.machine_category if tx and tx.machine_category else MACHINE_CATEGORIES[0]
        )
        self._field("機台種類:", 0, 2, ctk.CTkComboBox(
            self, values=MACHINE_CATEGORIES, variable=self._machine_cat_var, width=180,
        ))

        self._name_entry = self._field(
            "維修零件/主體:", 1, 0, MaterialNameEntry(self, self._hints, self._apply_hint, width=180)
        )
        self._name_entry.set(tx.material_name if tx else "")
        self._number_var, entry = self._text(tx.material_number if tx else "")
        self._field("料件編號(PN):", 1, 2, entry)

        self._machine_no_var, entry = self._text(tx.machine_number if tx else "")
        self._field("機台編號:", 2, 0, entry)
        self._sn_var, entry = self._text(tx.serial_number if tx else "")
        self._field("設備序號(SN):", 2, 2, entry)

        self._fault_var, entry = self._text(tx.fault_reason if tx else "", width=460)
        ctk.CTkLabel(self, text="故障原因:").grid(row=3, column=0, padx=(16, 8), pady=4, sticky="e")
        entry.grid(row=3, column=1, columnspan=3, padx=(0, 16), pady=4, sticky="ew")

        self._qty_var, entry = self._text(str(tx.quantity) if tx else "1")
        self._field("數量:", 4, 0, entry)
        self._price_var, self._price_entry = self._text(str(tx.unit_price) if tx else "0")
        self._field("維修單價:", 4, 2, self._price_entry)

        self._sent_picker = self._field("送修日期:", 5, 0, DatePickerWidget(
            self, initial_date=tx.sent_date if tx else "", date_format=self._date_format,
            allow_empty=True,
        ))
        self._repair_picker = self._field("完修日期:", 5, 2, DatePickerWidget(
            self, initial_date=tx.repair_date if tx else "", date_format=self._date_format,
            allow_empty=True,
        ))
        self._install_picker = self._field("上機日期:", 6, 0, DatePickerWidget(
            self, initial_date=tx.install_date if tx else "", date_format=self._date_format,
            allow_empty=True,
        ))
        self._total_label = self._field("維修總額:", 6, 2, ctk.CTkLabel(self, text="", anchor="w"))

        self._scrapped_var = ctk.BooleanVar(value=tx.is_scrapped if tx else False)
        ctk.CTkCheckBox(
            self, text="💀 標記為報廢", variable=self._scrapped_var,
            fg_color="#F43F5E", command=self._on_scrap_toggle,
        ).grid(row=7, column=1, padx=(0, 16), pady=4, sticky="w")

        self._note_var, entry = self._text(tx.note if tx else "", width=460)
        ctk.CTkLabel(self, text="備註:").grid(row=8, column=0, padx=(16, 8), pady=4, sticky="e")
        entry.grid(row=8, column=1, columnspan=3, padx=(0, 16), pady=4, sticky="ew")

        self._error_var = ctk.StringVar()
        ctk.CTkLabel(
            self, textvariable=self._error_var, text_color="#F44336", wraplength=460, anchor="w"
        ).grid(row=9, column=0, columnspan=4, padx=16, pady=(0, 4), sticky="ew")

        btn_frame = ctk.CTkFrame(self, fg_color="transparent")
        btn_frame.grid(row=10, column=0, columnspan=4, padx=16, pady=(4, 16), sticky="ew")
        ctk.CTkButton(
            btn_frame, text="取消", width=90,
            fg_color="transparent", border_width=1,
            text_color=("gray10", "gray90"),
            command=self.destroy,
        ).pack(side="left")
        self._save_btn = ctk.CTkButton(
            btn_frame, text="儲存維修紀錄", width=130,
            fg_color="#10B981", hover_color="#059669", command=self._on_save,
        )
        self._save_btn.pack(side="right")

        self._qty_var.trace_add("write", lambda *_: self._update_total())
        self._price_var.trace_add("write", lambda *_: self._update_total())
        self._on_scrap_toggle()

    def _on_scrap_toggle(self):
        if self._scrapped_var.get():
            self._price_var.set("0")
            self._price_entry.configure(state="disabled")
            self._repair_picker.set("")
            self._install_picker.set("")
        else:
            self._price_entry.configure(state="normal")
        self._update_total()

    def _apply_hint(self, hint: MaterialHint):
        self._number_var.set(hint.material_number or self._number_var.get())
        self._machine_cat_var.set(hint.machine_category or self._machine_cat_var.get())
        if not self._scrapped_var.get() and hint.unit_price:
            self._price_var.set(str(hint.unit_price))

    def _update_total(self):
        try:
            qty = read_quantity(self._qty_var.get())
            price = read_number(self._price_var.get(), "維修單價")
        except ValueError:
            self._total_label.configure(text="—")
            return
        self._total_label.configure(text=format_currency((qty or 1) * price))

    def _collect(self) -> Transaction:
        name = self._name_entry.get().strip()
        if not name:
            raise ValueError("請輸入維修零件/主體")
        if not self._fault_var.get().strip():
            raise ValueError("請填寫故障原因")
        for picker, label in ((self._date_picker, "單據日期"), (self._sent_picker, "送修日期"),
                              (self._repair_picker, "完修日期"), (self._install_picker, "上機日期")):
            if not picker.is_valid():
                raise ValueError(f"{label}格式錯誤")
        tx_id = (self._transaction.id if self._transaction
                 else new_transaction_id(TransactionType.REPAIR))
        return Transaction(
            id=tx_id,
            date=self._date_picker.get(),
            category=TransactionType.REPAIR,
            material_name=name,
            material_number=self._number_var.get().strip(),
            machine_category=self._machine_cat_var.get().strip(),
            machine_number=self._machine_no_var.get().strip(),
            serial_number=self._sn_var.get().strip(),
            quantity=read_quantity(self._qty_var.get()),
            unit_price=read_number(self._price_var.get(), "維修單價"),
            note=self._note_var.get().strip(),
            fault_reason=self._fault_var.get().strip(),
            is_scrapped=self._scrapped_var.get(),
            sent_date=self._sent_picker.get(),
            repair_date=self._repair_picker.get(),
            install_date=self._install_picker.get(),
        )

    def _on_save(self):
        try:
            tx = self._collect()
        except ValueError as e:
            self._error_var.set(str(e))
            return
        self._save_btn.configure(state="disabled", text="同步中…")
        self.update_idletasks()
        if not self._tx_svc.save(tx, self._existing_ids):
            self._save_btn.configure(state="normal", text="儲存維修紀錄")
            self._error_var.set("儲存失敗，請檢查連線後重試")
            return
        self.saved = True
        self.destroy()
