"""Maps sheet headers and raw payload keys onto canonical fields.

Writing and reading consult the same alias table (models.field_schema) in the
same priority order, so a row written here reads back to the same values.
"""
from collections.abc import Mapping, Sequence

from models.field_schema import FIELDS, FieldDef, FieldKind, is_applicable
from models.transaction import TransactionType
from services.derivation import derive_financials, to_number
from utils.date_helpers import parse_bool, to_taipei_date


def find_field(header) -> FieldDef | None:
    """First field (table order) whose header or alias equals ``header``."""
    text = str(header).strip() if header is not None else ""
    if not text:
        return None
    for field_def in FIELDS:
        if field_def.matches(text):
            return field_def
    return None


def target_fields(category: TransactionType) -> list[FieldDef]:
    return [f for f in FIELDS if is_applicable(f, category)]


def resolve_headers(existing_headers: Sequence, category: TransactionType) -> list[str]:
    """Canonical headers the partition lacks for this category.

    Append-only: existing columns are matched by header or alias and are
    never renamed or dropped.
    """
    present = {f.attr for f in (find_field(h) for h in existing_headers) if f}
    return [f.header for f in target_fields(category) if f.attr not in present]


def _payload_value(field_def: FieldDef, payload: Mapping):
    for key in field_def.keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def project_row(headers: Sequence, category: TransactionType,
                payload: Mapping, tx_id: str) -> list:
    """Values for one row, positionally aligned with ``headers``.

    Quantity, unit price and total always come from the derivation engine;
    whatever the payload says about them is ignored.
    """
    financials = derive_financials(payload)
    derived = {
        "quantity": financials.quantity,
        "unit_price": financials.unit_price,
        "total": financials.total,
    }
    values = []
    for header in headers:
        field_def = find_field(header)
        if field_def is None:
            text = str(header or "").strip().lower()
            if text == "id":
                values.append(tx_id)
            elif text == "type":
                values.append(category.value)
            else:
                values.append("")
            continue

        if field_def.attr == "id":
            values.append(tx_id)
        elif field_def.attr == "category":
            values.append(category.value)
        elif field_def.attr in derived:
            values.append(derived[field_def.attr])
        elif not is_applicable(field_def, category):
            values.append("")
        else:
            value = _payload_value(field_def, payload)
            if field_def.kind is FieldKind.BOOL:
                values.append(parse_bool(value))
            elif value is None:
                values.append("")
            elif field_def.kind is FieldKind.DATE:
                values.append(to_taipei_date(value))
            else:
                values.append(value)
    return values


def _coerce(field_def: FieldDef, value):
    if field_def.kind is FieldKind.BOOL:
        return parse_bool(value)
    if field_def.kind is FieldKind.DATE:
        return to_taipei_date(value)
    if field_def.kind is FieldKind.NUMBER:
        return to_number(value)
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def read_value(raw_row: Mapping, field_def: FieldDef):
    """Typed value of one field from a stored row; blank cells fall through
    to the next alias."""
    for key in field_def.keys:
        value = raw_row.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        return _coerce(field_def, value)
    return _coerce(field_def, None)


def read_record(raw_row: Mapping, category: TransactionType) -> dict:
    """Reverse mapping of one stored row: attribute name -> typed value.

    Every canonical field is present in the result. Blank cells fall through
    to the next alias; fields that do not apply to the category are blanked.
    """
    return {
        f.attr: read_value(raw_row, f) if is_applicable(f, category) else _coerce(f, None)
        for f in FIELDS
    }
