"""Excel settlement report: one summary sheet plus one sheet per category."""
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from models.transaction import CATEGORIES, Transaction, TransactionType
from services.report_service import filter_transactions, settlement_totals
from utils.constants import DEFAULT_OPERATOR
from utils.date_helpers import TAIPEI_TZ
from utils.logging_setup import get_logger

log = get_logger("warehouse.export_service")

SUMMARY_TITLE = "📊 數據總結"
TOTAL_LABEL = "★ 總計 ★"

_REPAIR_COLUMNS = [
    ("ID (編號)", 15, lambda t: t.id),
    ("單據日期", 12, lambda t: t.date),
    ("料件名稱", 30, lambda t: t.material_name),
    ("料件編號(PN)", 20, lambda t: t.material_number),
    ("機台編號", 15, lambda t: t.machine_number),
    ("設備序號(SN)", 18, lambda t: t.serial_number),
    ("故障原因", 25, lambda t: t.fault_reason),
    ("數量", 8, lambda t: t.quantity),
    ("維修單價", 12, lambda t: t.unit_price),
    ("維修總額", 15, lambda t: t.total),
    ("送修日", 12, lambda t: t.sent_date),
    ("完修日", 12, lambda t: t.repair_date),
    ("上機日", 12, lambda t: t.install_date),
    ("操作人", 12, lambda t: t.operator or DEFAULT_OPERATOR),
    ("備註", 40, lambda t: t.note),
]

_GENERAL_COLUMNS = [
    ("ID (編號)", 15, lambda t: t.id),
    ("日期", 12, lambda t: t.date),
    ("類別", 10, lambda t: t.category.value),
    ("料件名稱", 30, lambda t: t.material_name),
    ("料件編號(PN)", 20, lambda t: t.material_number),
    ("機台編號", 15, lambda t: t.machine_number),
    ("數量", 12, lambda t: t.quantity),
    ("單價", 12, lambda t: t.unit_price),
    ("總額", 15, lambda t: t.total),
    ("機台種類", 15, lambda t: t.machine_category),
    ("帳目", 15, lambda t: t.account_category),
    ("操作人", 15, lambda t: t.operator or DEFAULT_OPERATOR),
    ("備註", 40, lambda t: t.note),
]

_RECEIPT_COLUMN = ("收貨狀態", 12, lambda t: "已收到" if t.is_received else "待收貨")


def columns_for(category: TransactionType) -> list:
    if category is TransactionType.REPAIR:
        return list(_REPAIR_COLUMNS)
    if category is TransactionType.INBOUND:
        return _GENERAL_COLUMNS + [_RECEIPT_COLUMN]
    return list(_GENERAL_COLUMNS)


def select_export_data(
    txs: Sequence[Transaction],
    mode: str,
    *,
    repairs: bool,
    current: Sequence[Transaction] = (),
    year: str = "",
    month: str = "",
) -> tuple[list[Transaction], str]:
    """Records and base file name for one of the two export modes.

    'current' exports the list on screen; 'custom' exports one year-month,
    restricted to repair or non-repair records.
    """
    if mode == "current":
        name = "當前維修搜尋結果" if repairs else "當前核銷搜尋結果"
        return list(current), name
    if repairs:
        categories = [TransactionType.REPAIR]
        name = f"倉儲維修報表_{year}_{month}"
    else:
        categories = [c for c in CATEGORIES if c is not TransactionType.REPAIR]
        name = f"倉儲核銷報表_{year}_{month}"
    data = filter_transactions(txs, categories=categories, year=year, month=month)
    return data, name


class ExportService:
    def export_xlsx(
        self,
        transactions: Sequence[Transaction],
        base_name: str,
        folder: str | Path,
        now: datetime | None = None,
    ) -> Path:
        """Write the report and return its path.

        Raises ValueError when there is nothing to export.
        """
        if not transactions:
            raise ValueError("目前沒有符合條件的紀錄可供匯出")
        now = now or datetime.now(TAIPEI_TZ)

        wb = Workbook()
        self._write_summary(wb.active, transactions, now)
        for category in CATEGORIES:
            items = [t for t in transactions if t.category is category]
            if items:
                self._write_detail(wb.create_sheet(title=category.value), category, items)

        target = Path(folder) / f"{base_name}_{now.strftime('%Y-%m-%d')}.xlsx"
        target.parent.mkdir(parents=True, exist_ok=True)
        wb.save(target)
        log.info("Exported %d records to %s", len(transactions), target)
        return target

    @staticmethod
    def _write_summary(ws, transactions: Sequence[Transaction], now: datetime) -> None:
        ws.title = SUMMARY_TITLE
        totals = settlement_totals(transactions)
        ws.append(["倉儲月結智慧報表 - 數據總結"])
        ws["A1"].font = Font(bold=True, size=14)
        ws.append(["生成時間", now.strftime("%Y/%m/%d %H:%M:%S")])
        ws.append(["資料總數", f"{len(transactions)} 筆"])
        ws.append([])
        ws.append(["類別摘要統計", "件數", "總額 (NT$)", "百分比"])
        for cell in ws[5]:
            cell.font = Font(bold=True)
        for category, bucket in totals.by_category.items():
            if totals.grand_total > 0:
                percent = f"{bucket.total / totals.grand_total * 100:.1f}%"
            else:
                percent = "0%"
            ws.append([category.value, bucket.count, bucket.total, percent])
        ws.append([])
        ws.append(["★ 全案總計", totals.grand_count, totals.grand_total, "100%"])
        ws[ws.max_row][0].font = Font(bold=True)
        for col, width in enumerate((20, 15, 20, 15), start=1):
            ws.column_dimensions[get_column_letter(col)].width = width

    @staticmethod
    def _write_detail(ws, category: TransactionType, items: list[Transaction]) -> None:
        columns = columns_for(category)
        headers = [c[0] for c in columns]
        ws.append(headers)
        for cell in ws[1]:
            cell.font = Font(bold=True)
        for tx in items:
            ws.append([getter(tx) for _, _, getter in columns])

        grand_total = sum(t.total for t in items)
        total_row = dict.fromkeys(headers, None)
        total_row["ID (編號)"] = "---"
        if category is TransactionType.REPAIR:
            total_row["單據日期"] = TOTAL_LABEL
            total_row["維修總額"] = grand_total
            total_row["備註"] = f"共計 {len(items)} 筆維修，總結 NT$ {grand_total:,.0f}"
        else:
            total_row["日期"] = TOTAL_LABEL
            total_row["料件名稱"] = f"共 {len(items)} 筆"
            total_row["總額"] = grand_total
            total_row["備註"] = f"本月 {category.value} 核銷總計"
        ws.append(list(total_row.values()))
        for cell in ws[ws.max_row]:
            cell.font = Font(bold=True)

        for col, (_, width, _) in enumerate(columns, start=1):
            ws.column_dimensions[get_column_letter(col)].width = width
        ws.freeze_panes = "A2"
