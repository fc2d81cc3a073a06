from collections.abc import Sequence
from pathlib import Path
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from database.sheet_store import SheetStore, StoreError
from utils.logging_setup import get_logger

log = get_logger("warehouse.workbook_store")


class WorkbookStore(SheetStore):
    """SheetStore over a local .xlsx file, one worksheet per partition.

    The workbook is saved after every mutation. With ``path=None`` it lives
    only in memory (tests, previews).
    """

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path) if path else None
        if self._path and self._path.exists():
            try:
                self._wb = load_workbook(self._path)
            except (InvalidFileException, BadZipFile, OSError, KeyError) as e:
                raise StoreError(f"Cannot open workbook {self._path}: {e}") from e
            log.info("Opened workbook %s", self._path)
        else:
            self._wb = Workbook()
            # Partitions are created on demand; drop the default sheet
            self._wb.remove(self._wb.active)

    @property
    def path(self) -> Path | None:
        return self._path

    def _save(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._wb.save(self._path)
        except OSError as e:
            raise StoreError(f"Cannot save workbook {self._path}: {e}") from e

    def _sheet(self, name: str):
        if name not in self._wb.sheetnames:
            raise StoreError(f"Partition '{name}' does not exist")
        return self._wb[name]

    # ── Read ─────────────────────────────────────────────────────────────────

    def partitions(self) -> list[str]:
        return list(self._wb.sheetnames)

    def fetch_headers(self, name: str) -> list[str]:
        ws = self._sheet(name)
        if ws.max_row < 1:
            return []
        first = next(ws.iter_rows(min_row=1, max_row=1, values_only=True), ())
        headers = ["" if v is None else str(v).strip() for v in first]
        while headers and not headers[-1]:
            headers.pop()
        return headers

    def fetch_all_rows(self, name: str) -> list[dict]:
        ws = self._sheet(name)
        headers = self.fetch_headers(name)
        rows = []
        for values in ws.iter_rows(min_row=2, max_col=max(len(headers), 1), values_only=True):
            row = {}
            for header, value in zip(headers, values):
                # Duplicate headers: the leftmost column wins
                if header and header not in row:
                    row[header] = value
            rows.append(row)
        return rows

    # ── Write ────────────────────────────────────────────────────────────────

    def create_partition(self, name: str, headers: Sequence[str] = ()) -> None:
        if name in self._wb.sheetnames:
            return
        ws = self._wb.create_sheet(title=name)
        for col, header in enumerate(headers, start=1):
            ws.cell(row=1, column=col, value=header)
        self._save()
        log.info("Created partition '%s'", name)

    def append_headers(self, name: str, headers: Sequence[str]) -> None:
        if not headers:
            return
        ws = self._sheet(name)
        start = len(self.fetch_headers(name)) + 1
        for offset, header in enumerate(headers):
            ws.cell(row=1, column=start + offset, value=header)
        self._save()

    def append_row(self, name: str, values: Sequence) -> None:
        ws = self._sheet(name)
        # Explicit row number: ws.append() tracks its own cursor, which goes
        # stale after delete_rows()
        target = max(ws.max_row, 1) + 1
        self._write_row(ws, target, values)
        self._save()

    def overwrite_row(self, name: str, row_index: int, values: Sequence) -> None:
        ws = self._sheet(name)
        target = self._sheet_row(ws, row_index)
        self._write_row(ws, target, values)
        self._save()

    def delete_row(self, name: str, row_index: int) -> None:
        ws = self._sheet(name)
        ws.delete_rows(self._sheet_row(ws, row_index))
        self._save()

    @staticmethod
    def _sheet_row(ws, row_index: int) -> int:
        target = row_index + 2
        if row_index < 0 or target > ws.max_row:
            raise StoreError(f"Row index {row_index} out of range in '{ws.title}'")
        return target

    @staticmethod
    def _write_row(ws, row: int, values: Sequence) -> None:
        for col, value in enumerate(values, start=1):
            ws.cell(row=row, column=col, value=value)
