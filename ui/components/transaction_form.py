import math

import customtkinter as ctk

from models.transaction import Transaction, TransactionType, new_transaction_id
from services.report_service import MaterialHint, match_material_names
from services.transaction_service import TransactionService
from ui.components.confirm_dialog import center_on_parent
from ui.components.date_picker import DatePickerWidget
from utils.constants import ACCOUNT_CATEGORIES, MACHINE_CATEGORIES
from utils.currency import format_currency
from utils.date_helpers import today_str

_RECORD_TYPES = (TransactionType.INBOUND, TransactionType.USAGE, TransactionType.CONSTRUCTION)


def read_number(text: str, label: str) -> float:
    """Form input → non-negative number. Blank counts as 0."""
    text = (text or "").strip().replace(",", "")
    if not text:
        return 0
    try:
        value = float(text)
    except ValueError:
        raise ValueError(f"{label}必須是數字")
    if not math.isfinite(value):
        raise ValueError(f"{label}必須是數字")
    if value < 0:
        raise ValueError(f"{label}不可為負數")
    return int(value) if value.is_integer() else value


def read_quantity(text: str) -> int:
    """Whole units only. Blank counts as 0, which the service turns into 1."""
    value = read_number(text, "數量")
    if value != int(value):
        raise ValueError("數量必須是整數")
    return int(value)


class MaterialNameEntry(ctk.CTkComboBox):
    """Material name with history suggestions; picking one calls ``on_pick``."""

    def __init__(self, master, hints: dict[str, MaterialHint], on_pick, **kwargs):
        super().__init__(master, values=[], command=self._picked, **kwargs)
        self._hints = hints
        self._on_pick = on_pick
        self.bind("<KeyRelease>", self._on_key)

    def _on_key(self, _event=None):
        self.configure(values=match_material_names(self._hints, self.get()))

    def _picked(self, name: str):
        hint = self._hints.get(name)
        if hint:
            self._on_pick(hint)


class TransactionForm(ctk.CTkToplevel):
    """Add or edit an inbound / usage / construction record."""

    _last_date: str = today_str()

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
        self.saved = False

        self.title("編輯核銷紀錄" if transaction else "新增核銷紀錄")
        self.resizable(False, False)
        self.grid_columnconfigure(1, weight=1)

        self._build(transaction, date_format)

        self.transient(master)
        self.grab_set()
        center_on_parent(self)

    def _label(self, text, row):
        ctk.CTkLabel(self, text=text).grid(row=row, column=0, padx=(16, 8), pady=4, sticky="e")

    def _entry(self, row, value="") -> ctk.StringVar:
        var = ctk.StringVar(value=value)
        ctk.CTkEntry(self, textvariable=var, width=220).grid(
            row=row, column=1, padx=(0, 16), pady=4, sticky="ew"
        )
        return var

    def _build(self, tx: Transaction | None, date_format: str):
        r = 0
        self._label("類別:", r)
        initial = tx.category if tx and tx.category in _RECORD_TYPES else TransactionType.USAGE
        self._type_var = ctk.StringVar(value=initial.value)
        ctk.CTkSegmentedButton(
            self, values=[t.value for t in _RECORD_TYPES],
            variable=self._type_var, command=lambda _: self._on_type_change(),
        ).grid(row=r, column=1, padx=(0, 16), pady=4, sticky="w")
        r += 1

        self._label("日期:", r)
        self._date_picker = DatePickerWidget(
            self, initial_date=tx.date if tx else TransactionForm._last_date,
            date_format=date_format,
        )
        self._date_picker.grid(row=r, column=1, padx=(0, 16), pady=4, sticky="w")
        r += 1

        self._label("帳目類別:", r)
        self._account_var = ctk.StringVar(
            value=(tx.account_category if tx and tx.account_category else ACCOUNT_CATEGORIES[0])
        )
        ctk.CTkComboBox(
            self, values=ACCOUNT_CATEGORIES, variable=self._account_var, width=220,
        ).grid(row=r, column=1, padx=(0, 16), pady=4, sticky="ew")
        r += 1

        self._label("料件名稱:", r)
        self._name_entry = MaterialNameEntry(self, self._hints, self._apply_hint, width=220)
        self._name_entry.set(tx.material_name if tx else "")
        self._name_entry.grid(row=r, column=1, padx=(0, 16), pady=4, sticky="ew")
        r += 1

        self._label("料件編號:", r)
        self._number_var = self._entry(r, tx.material_number if tx else "")
        r += 1

        self._label("機台種類:", r)
        self._machine_cat_var = ctk.StringVar(
            value=(tx.machine_category if tx and tx.machine_category else MACHINE_CATEGORIES[0])
        )
        ctk.CTkComboBox(
            self, values=MACHINE_CATEGORIES, variable=self._machine_cat_var, width=220,
        ).grid(row=r, column=1, padx=(0, 16), pady=4, sticky="ew")
        r += 1

        self._label("機台編號:", r)
        self._machine_no_var = self._entry(r, tx.machine_number if tx else "")
        r += 1

        self._label("數量:", r)
        self._qty_var = self._entry(r, str(tx.quantity) if tx else "1")
        r += 1

        self._label("單價:", r)
        self._price_var = self._entry(r, str(tx.unit_price) if tx else "0")
        r += 1

        self._label("小計:", r)
        self._total_label = ctk.CTkLabel(self, text="", anchor="w")
        self._total_label.grid(row=r, column=1, padx=(0, 16), pady=4, sticky="w")
        self._qty_var.trace_add("write", lambda *_: self._update_total())
        self._price_var.trace_add("write", lambda *_: self._update_total())
        r += 1

        self._received_var = ctk.BooleanVar(value=tx.is_received if tx else False)
        self._received_box = ctk.CTkCheckBox(self, text="已收貨", variable=self._received_var)
        self._received_box.grid(row=r, column=1, padx=(0, 16), pady=4, sticky="w")
        r += 1

        self._label("備註:", r)
        self._note_var = self._entry(r, tx.note if tx else "")
        r += 1

        self._error_var = ctk.StringVar()
        ctk.CTkLabel(
            self, textvariable=self._error_var, text_color="#F44336", wraplength=300, anchor="w"
        ).grid(row=r, column=0, columnspan=2, padx=16, pady=(0, 4), sticky="ew")
        r += 1

        btn_frame = ctk.CTkFrame(self, fg_color="transparent")
        btn_frame.grid(row=r, column=0, columnspan=2, padx=16, pady=(4, 16), sticky="ew")
        ctk.CTkButton(
            btn_frame, text="取消", width=90,
            fg_color="transparent", border_width=1,
            text_color=("gray10", "gray90"),
            command=self.destroy,
        ).pack(side="left")
        self._save_btn = ctk.CTkButton(btn_frame, text="儲存", width=110, command=self._on_save)
        self._save_btn.pack(side="right")

        self._on_type_change()
        self._update_total()

    def _on_type_change(self):
        # Receipt tracking only applies to inbound stock
        if self._type_var.get() == TransactionType.INBOUND.value:
            self._received_box.configure(state="normal")
        else:
            self._received_var.set(False)
            self._received_box.configure(state="disabled")

    def _apply_hint(self, hint: MaterialHint):
        self._number_var.set(hint.material_number or self._number_var.get())
        self._machine_cat_var.set(hint.machine_category or self._machine_cat_var.get())

    def _update_total(self):
        try:
            qty = read_quantity(self._qty_var.get())
            price = read_number(self._price_var.get(), "單價")
        except ValueError:
            self._total_label.configure(text="—")
            return
        self._total_label.configure(text=format_currency((qty or 1) * price))

    def _collect(self) -> Transaction:
        name = self._name_entry.get().strip()
        if not name:
            raise ValueError("請輸入料件名稱")
        if not self._date_picker.is_valid():
            raise ValueError("日期格式錯誤")
        category = TransactionType.parse(self._type_var.get())
        tx_id = self._transaction.id if self._transaction else new_transaction_id(category)
        return Transaction(
            id=tx_id,
            date=self._date_picker.get(),
            category=category,
            material_name=name,
            account_category=self._account_var.get().strip(),
            material_number=self._number_var.get().strip(),
            machine_category=self._machine_cat_var.get().strip(),
            machine_number=self._machine_no_var.get().strip(),
            quantity=read_quantity(self._qty_var.get()),
            unit_price=read_number(self._price_var.get(), "單價"),
            note=self._note_var.get().strip(),
            is_received=self._received_var.get(),
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
            self._save_btn.configure(state="normal", text="儲存")
            self._error_var.set("儲存失敗，請檢查連線後重試")
            return
        TransactionForm._last_date = tx.date
        self.saved = True
        self.destroy()
