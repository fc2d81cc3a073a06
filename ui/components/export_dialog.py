from tkinter import filedialog

import customtkinter as ctk

from models.transaction import Transaction
from services.export_service import ExportService, select_export_data
from ui.components.confirm_dialog import center_on_parent, show_message
from utils.date_helpers import today
from utils.logging_setup import get_logger

log = get_logger("warehouse.ui.export")

_MONTHS = [f"{m:02d}" for m in range(1, 13)]


class ExportDialog(ctk.CTkToplevel):
    """Choose between the list on screen and a whole month, then save .xlsx."""

    def __init__(
        self,
        master,
        export_service: ExportService,
        transactions: list[Transaction],
        current: list[Transaction],
        years: list[str],
        repairs: bool,
        **kwargs,
    ):
        super().__init__(master, **kwargs)
        self._export_svc = export_service
        self._transactions = transactions
        self._current = current
        self._repairs = repairs

        self.title("匯出維修報表" if repairs else "匯出核銷報表")
        self.resizable(False, False)
        self.grid_columnconfigure(0, weight=1)

        self._mode_var = ctk.StringVar(value="current")
        ctk.CTkRadioButton(
            self, text=f"目前搜尋結果（共 {len(current)} 筆）",
            variable=self._mode_var, value="current",
        ).grid(row=0, column=0, padx=20, pady=(16, 4), sticky="w")
        ctk.CTkRadioButton(
            self, text="指定年月", variable=self._mode_var, value="custom",
        ).grid(row=1, column=0, padx=20, pady=4, sticky="w")

        period = ctk.CTkFrame(self, fg_color="transparent")
        period.grid(row=2, column=0, padx=40, pady=4, sticky="w")
        now = today()
        self._year_var = ctk.StringVar(value=str(now.year))
        ctk.CTkComboBox(period, values=years, variable=self._year_var, width=90,
                        state="readonly").pack(side="left", padx=(0, 6))
        self._month_var = ctk.StringVar(value=f"{now.month:02d}")
        ctk.CTkComboBox(period, values=_MONTHS, variable=self._month_var, width=70,
                        state="readonly").pack(side="left")

        btn_frame = ctk.CTkFrame(self, fg_color="transparent")
        btn_frame.grid(row=3, column=0, padx=20, pady=(12, 16), sticky="ew")
        ctk.CTkButton(
            btn_frame, text="取消", width=90,
            fg_color="transparent", border_width=1,
            text_color=("gray10", "gray90"),
            command=self.destroy,
        ).pack(side="left")
        ctk.CTkButton(btn_frame, text="匯出 Excel", width=110, command=self._on_export).pack(side="right")

        self.transient(master)
        self.grab_set()
        center_on_parent(self)

    def _on_export(self):
        data, base_name = select_export_data(
            self._transactions, self._mode_var.get(),
            repairs=self._repairs, current=self._current,
            year=self._year_var.get(), month=self._month_var.get(),
        )
        if not data:
            show_message(self, "匯出", "⚠️ 此範圍內暫無資料可供導出")
            return
        folder = filedialog.askdirectory(title="選擇匯出資料夾", parent=self)
        if not folder:
            return
        try:
            path = self._export_svc.export_xlsx(data, base_name, folder)
        except (ValueError, OSError) as e:
            log.error("Export failed: %s", e)
            show_message(self, "匯出失敗", str(e))
            return
        show_message(self, "匯出完成", f"已儲存至\n{path}")
        self.destroy()
