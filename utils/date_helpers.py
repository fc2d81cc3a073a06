from datetime import date, datetime, timedelta, timezone
from utils.constants import DATE_FORMAT, TAIPEI_UTC_OFFSET_HOURS, TRUTHY_STRINGS

# Taipei has no DST, a fixed offset is exact
TAIPEI_TZ = timezone(timedelta(hours=TAIPEI_UTC_OFFSET_HOURS), "Asia/Taipei")

# ── Display date format options ───────────────────────────────────────────────

_STRFTIME_MAP = {
    "YYYY-MM-DD": "%Y-%m-%d",
    "YYYY/MM/DD": "%Y/%m/%d",
}


def today() -> date:
    """Current civil date in Taipei, independent of the host timezone."""
    return datetime.now(TAIPEI_TZ).date()


def today_str() -> str:
    return today().strftime(DATE_FORMAT)


def parse_date(date_str: str) -> date | None:
    """Parse a date string in YYYY-MM-DD format, returning None on failure."""
    if not date_str:
        return None
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue
    return None


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def to_taipei_date(value) -> str:
    """Coerce a stored date-like value to a Taipei civil date 'YYYY-MM-DD'.

    Accepts date/datetime objects (as returned by openpyxl), ISO strings with
    or without an offset (web stores serialize dates as UTC instants), and
    slash/dot separated dates. Anything unparseable becomes ''.
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(TAIPEI_TZ)
        return format_date(value.date())
    if isinstance(value, date):
        return format_date(value)
    text = str(value).strip()
    if not text:
        return ""
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        d = parse_date(text)
        return format_date(d) if d else ""
    return to_taipei_date(parsed)


def parse_bool(value) -> bool:
    """Tolerant boolean read of a spreadsheet cell: true, 1, 'TRUE', 'YES', '是'."""
    if value is True:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 1
    if isinstance(value, str):
        return value.strip().upper() in TRUTHY_STRINGS
    return False


def month_label(month: int) -> str:
    """1 → '1月'."""
    return f"{month}月"


def format_display_date(date_str: str, fmt_key: str = "YYYY-MM-DD") -> str:
    """Convert a YYYY-MM-DD storage string to the user-facing display format."""
    if not date_str:
        return date_str
    d = parse_date(date_str)
    if d is None:
        return date_str
    return d.strftime(_STRFTIME_MAP.get(fmt_key, DATE_FORMAT))


def parse_display_date(display_str: str, fmt_key: str) -> date | None:
    """Parse a date in the given display format. Returns None on failure.

    Falls back to ISO 8601 parse if the display format doesn't match.
    """
    if not display_str:
        return None
    fmt = _STRFTIME_MAP.get(fmt_key, DATE_FORMAT)
    try:
        return datetime.strptime(display_str.strip(), fmt).date()
    except ValueError:
        return parse_date(display_str.strip())
