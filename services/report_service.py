"""Summary views over an in-memory list of transactions.

Everything except ``ReportService`` is a pure function. Filtering compares
'YYYY-MM-DD' strings directly; that is valid because every date is normalized
to that form when read from the store.
"""
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from models.transaction import CATEGORIES, Transaction, TransactionType
from utils.constants import ITEMS_PER_PAGE, REPAIR_RANKING_LIMIT, UNCATEGORIZED
from utils.date_helpers import month_label


@dataclass
class CategoryTotal:
    total: float = 0
    count: int = 0


@dataclass
class SettlementTotals:
    by_category: dict[TransactionType, CategoryTotal]
    grand_total: float = 0
    grand_count: int = 0


@dataclass
class MonthAmount:
    month: int      # 1-12
    amount: float = 0

    @property
    def label(self) -> str:
        return month_label(self.month)


@dataclass
class ShareItem:
    name: str
    value: float
    percent: float


@dataclass
class RankingEntry:
    name: str
    count: int
    total: float
    percentage: float   # relative to the top entry's count


@dataclass
class MaterialHint:
    material_number: str
    machine_category: str
    unit_price: float


# ── Filtering ────────────────────────────────────────────────────────────────

def _matches_status(tx: Transaction, status: str) -> bool:
    if status == "pending_inbound":
        return tx.category is TransactionType.INBOUND and not tx.is_received
    if status == "scrapped":
        return tx.is_scrapped
    if status == "repairing":
        return tx.is_repairing
    return True


def _matches_keyword(tx: Transaction, keyword: str) -> bool:
    haystack = (tx.material_name, tx.material_number, tx.serial_number, tx.machine_number)
    return any(keyword in (value or "").lower() for value in haystack)


def filter_transactions(
    txs: Iterable[Transaction],
    *,
    start_date: str = "",
    end_date: str = "",
    categories: Iterable[TransactionType] | None = None,
    keyword: str = "",
    status: str = "all",
    year: str = "",
    month: str = "all",
    material_name: str | None = None,
    include_scrapped: bool = True,
) -> list[Transaction]:
    """Keep transactions matching every given criterion.

    ``month`` is 'all' or a two-digit month and applies together with
    ``year``. Keyword search is case-insensitive over material name/number,
    serial number and machine number.
    """
    wanted = set(categories) if categories is not None else None
    keyword = (keyword or "").strip().lower()
    result = []
    for tx in txs:
        if not _matches_status(tx, status):
            continue
        if wanted is not None and tx.category not in wanted:
            continue
        if not include_scrapped and tx.is_scrapped:
            continue
        if material_name and tx.material_name != material_name:
            continue
        if year and not tx.date.startswith(year):
            continue
        if month and month != "all" and tx.date[5:7] != month:
            continue
        if start_date and tx.date < start_date:
            continue
        if end_date and tx.date > end_date:
            continue
        if keyword and not _matches_keyword(tx, keyword):
            continue
        result.append(tx)
    return result


def sort_by_date_desc(txs: Iterable[Transaction]) -> list[Transaction]:
    """Newest first; stable for records sharing a date."""
    return sorted(txs, key=lambda t: t.date[:10], reverse=True)


def page_count(total_items: int, per_page: int = ITEMS_PER_PAGE) -> int:
    return max(1, math.ceil(total_items / per_page))


def paginate(items: Sequence, page: int, per_page: int = ITEMS_PER_PAGE) -> list:
    """1-based page; out-of-range pages are clamped."""
    page = min(max(page, 1), page_count(len(items), per_page))
    start = (page - 1) * per_page
    return list(items[start:start + per_page])


# ── Aggregation ──────────────────────────────────────────────────────────────

def settlement_totals(
    txs: Iterable[Transaction],
    categories: Iterable[TransactionType] = CATEGORIES,
) -> SettlementTotals:
    """Per-category sum and count. Requested categories are always present,
    zero-filled; transactions outside them are ignored."""
    by_category = {c: CategoryTotal() for c in categories}
    grand_total = 0
    grand_count = 0
    for tx in txs:
        bucket = by_category.get(tx.category)
        if bucket is None:
            continue
        bucket.total += tx.total
        bucket.count += 1
        grand_total += tx.total
        grand_count += 1
    return SettlementTotals(by_category, grand_total, grand_count)


def monthly_trend(
    txs: Iterable[Transaction],
    year: int | str,
    categories: Iterable[TransactionType] | None = None,
) -> list[MonthAmount]:
    """Twelve entries, January first; empty months report 0."""
    months = [MonthAmount(m) for m in range(1, 13)]
    wanted = set(categories) if categories is not None else None
    prefix = f"{year}-"
    for tx in txs:
        if not tx.date.startswith(prefix):
            continue
        if wanted is not None and tx.category not in wanted:
            continue
        try:
            index = int(tx.date[5:7]) - 1
        except ValueError:
            continue
        if 0 <= index < 12:
            months[index].amount += tx.total
    return months


def category_share(txs: Iterable[Transaction]) -> list[ShareItem]:
    """Totals grouped by machine category, largest first."""
    groups: dict[str, float] = {}
    for tx in txs:
        name = tx.machine_category or UNCATEGORIZED
        groups[name] = groups.get(name, 0) + tx.total
    overall = sum(groups.values())
    items = [
        ShareItem(name, value, (value / overall) * 100 if overall > 0 else 0)
        for name, value in groups.items()
    ]
    items.sort(key=lambda s: s.value, reverse=True)
    return items


def repair_ranking(
    txs: Iterable[Transaction], limit: int = REPAIR_RANKING_LIMIT
) -> list[RankingEntry]:
    """Most-repaired materials: count desc, then total desc."""
    stats: dict[str, list] = {}
    for tx in txs:
        if tx.category is not TransactionType.REPAIR:
            continue
        entry = stats.setdefault(tx.material_name, [0, 0])
        entry[0] += 1
        entry[1] += tx.total
    ranked = sorted(stats.items(), key=lambda kv: (-kv[1][0], -kv[1][1]))
    if not ranked:
        return []
    top_count = ranked[0][1][0]
    return [
        RankingEntry(name, count, total, (count / top_count) * 100)
        for name, (count, total) in ranked[:limit]
    ]


def available_years(txs: Iterable[Transaction], today: date) -> list[str]:
    """Years present in the data plus the current one, newest first."""
    years = {str(today.year)}
    for tx in txs:
        y = tx.date.split("-")[0]
        if len(y) == 4 and y.isdigit():
            years.add(y)
    return sorted(years, reverse=True)


def material_suggestions(
    txs: Iterable[Transaction], category: TransactionType | None = None
) -> dict[str, MaterialHint]:
    """Latest known details per material name, for form autocomplete."""
    hints: dict[str, MaterialHint] = {}
    for tx in sorted(txs, key=lambda t: t.date):
        if category is not None and tx.category is not category:
            continue
        if not tx.material_name:
            continue
        hints[tx.material_name] = MaterialHint(
            tx.material_number, tx.machine_category, tx.unit_price
        )
    return hints


def match_material_names(hints: dict[str, MaterialHint], text: str, limit: int = 5) -> list[str]:
    text = (text or "").strip().lower()
    if not text:
        return []
    return [n for n in hints if text in n.lower() and n.lower() != text][:limit]


# ── Dashboard ────────────────────────────────────────────────────────────────

# Dashboard type filter values
DASHBOARD_ALL = "ALL"
DASHBOARD_TYPES = (TransactionType.INBOUND, TransactionType.REPAIR)


@dataclass
class DashboardData:
    year: str
    month: str
    type_filter: str
    settlement: SettlementTotals
    trend: list[MonthAmount]
    share: list[ShareItem]
    ranking: list[RankingEntry]
    years: list[str] = field(default_factory=list)

    @property
    def period_label(self) -> str:
        return "整年度" if self.month == "all" else f"{self.month} 月"


class ReportService:
    """Builds the dashboard view; only inbound and repair records count
    towards settlement."""

    def dashboard(
        self,
        txs: list[Transaction],
        year: str,
        month: str = "all",
        type_filter: str = DASHBOARD_ALL,
        today: date | None = None,
    ) -> DashboardData:
        year = str(year)
        selected = TransactionType.parse(type_filter)
        if selected in DASHBOARD_TYPES:
            categories = (selected,)
        else:
            categories = DASHBOARD_TYPES
            type_filter = DASHBOARD_ALL

        year_txs = filter_transactions(txs, year=year)
        period = filter_transactions(year_txs, month=month, categories=categories)
        years = available_years(txs, today) if today else []
        return DashboardData(
            year=year,
            month=month,
            type_filter=type_filter,
            settlement=settlement_totals(period, DASHBOARD_TYPES),
            trend=monthly_trend(year_txs, year, categories),
            share=category_share(period),
            ranking=repair_ranking(period),
            years=years,
        )
