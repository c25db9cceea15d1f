"""Utilities for importing network snapshots from CSV files and Excel workbooks."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable

import pandas as pd
from dateutil import parser as date_parser
from sqlalchemy import select
from sqlalchemy.orm import Session

from compdesk import crud
from compdesk.cache import get_cache
from compdesk.core.network import NetworkRow
from compdesk.models import Period

logger = logging.getLogger(__name__)

NETWORK_COLUMNS: dict[str, dict[str, Any]] = {
    "id": {"aliases": ["id", "id_customers", "customer id", "distributor id", "id distribuidor"], "required": True},
    "full_name": {"aliases": ["full name", "full_name", "name", "nombre", "nombre completo"], "required": True},
    "sponsor_id": {
        "aliases": ["sponsor id", "id_sponsor", "sponsor", "patrocinador", "id patrocinador"],
        "required": False,
    },
    "name_plan": {"aliases": ["rank", "plan", "name_plan", "rango"], "required": False},
    "personal_points": {
        "aliases": ["personal points", "personal_points", "point_current_customers", "puntos personales", "pp"],
        "required": False,
    },
    "group_points": {
        "aliases": [
            "group points",
            "group_points",
            "business points",
            "point_business_customers",
            "pts_negocio",
            "puntos de negocio",
        ],
        "required": False,
    },
}

DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")


def _row_number(idx: Any) -> int:
    try:
        return int(idx) + 2
    except (TypeError, ValueError):
        return 0


@dataclass
class ImportSummary:
    rows_read: int = 0
    rows_imported: int = 0
    period_id: int | None = None
    period_created: bool = False
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "rows_read": self.rows_read,
            "rows_imported": self.rows_imported,
            "period_id": self.period_id,
            "period_created": self.period_created,
            "errors": self.errors,
        }


def resolve_column(df: pd.DataFrame, aliases: Iterable[str]) -> str | None:
    lookup = {str(col).strip().lower(): str(col) for col in df.columns}
    for alias in aliases:
        key = alias.strip().lower()
        if key in lookup:
            return lookup[key]
    return None


def normalize_columns(df: pd.DataFrame, spec: dict[str, dict[str, Any]], label: str) -> pd.DataFrame:
    mapping: dict[str, str] = {}
    for canonical, column_spec in spec.items():
        source = resolve_column(df, column_spec["aliases"])
        if source:
            mapping[source] = canonical
        elif column_spec.get("required", False):
            raise ValueError(f"Missing required column '{canonical}' in {label} file")
    renamed = df.rename(columns=mapping)
    columns = list(mapping.values())
    return renamed[columns]


def parse_date_value(raw: Any, field_name: str) -> date:
    if raw is None or (not isinstance(raw, (date, datetime)) and pd.isna(raw)):
        raise ValueError(f"{field_name} is missing")
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if not text:
        raise ValueError(f"{field_name} is empty")
    for pattern in DATE_FORMATS:
        try:
            return datetime.strptime(text, pattern).date()
        except ValueError:
            continue
    try:
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, TypeError, OverflowError) as exc:
        raise ValueError(f"Could not parse {field_name} value '{raw}'") from exc


def _parse_number(raw: Any, field_name: str) -> Decimal:
    text = str(raw).strip().replace(",", "")
    try:
        return Decimal(text)
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid {field_name} value '{raw}'") from exc


def parse_id_value(raw: Any, field_name: str) -> int:
    if pd.isna(raw) or not str(raw).strip():
        raise ValueError(f"{field_name} is missing")
    value = _parse_number(raw, field_name)
    if value != value.to_integral_value() or value <= 0:
        raise ValueError(f"{field_name} must be a positive whole number (got {raw})")
    return int(value)


def parse_optional_id(raw: Any, field_name: str) -> int | None:
    if pd.isna(raw) or not str(raw).strip():
        return None
    if _parse_number(raw, field_name) == 0:
        return None
    return parse_id_value(raw, field_name)


def parse_points_value(raw: Any, field_name: str) -> int:
    if pd.isna(raw) or not str(raw).strip():
        return 0
    value = _parse_number(raw, field_name)
    if value < 0:
        raise ValueError(f"{field_name} must not be negative (got {raw})")
    if value != value.to_integral_value():
        raise ValueError(f"{field_name} must be a whole number of points (got {raw})")
    return int(value)


def clean_string(raw: Any) -> str | None:
    if pd.isna(raw):
        return None
    text = str(raw).strip()
    return text or None


def load_network_frame(source: str | Path | bytes, filename: str | None = None, sheet_name: str | int = 0) -> pd.DataFrame:
    """Read a CSV or XLSX snapshot. ``filename`` picks the format for raw bytes."""

    if isinstance(source, bytes):
        name = (filename or "").lower()
        payload: Any = BytesIO(source)
    else:
        name = str(filename or source).lower()
        payload = source
    try:
        if name.endswith((".xlsx", ".xlsm", ".xls")):
            return pd.read_excel(payload, sheet_name=sheet_name)
        return pd.read_csv(payload)
    except (ValueError, OSError) as exc:
        raise ValueError(f"Could not read network file '{filename or source}': {exc}") from exc


def parse_network_rows(df: pd.DataFrame) -> tuple[list[NetworkRow], list[str]]:
    """Convert a snapshot frame into rows, collecting row-numbered errors without aborting."""

    normalized = normalize_columns(df, NETWORK_COLUMNS, "network")
    records = normalized.dropna(how="all")
    rows: list[NetworkRow] = []
    errors: list[str] = []
    seen: set[int] = set()

    for idx, record in records.iterrows():
        row_number = _row_number(idx)
        try:
            distributor_id = parse_id_value(record.get("id"), "id")
            full_name = clean_string(record.get("full_name"))
            if not full_name:
                raise ValueError("full name is missing")
            if distributor_id in seen:
                raise ValueError(f"duplicate distributor id {distributor_id}")
            row = NetworkRow(
                id=distributor_id,
                full_name=full_name,
                sponsor_id=parse_optional_id(record.get("sponsor_id"), "sponsor id"),
                name_plan=clean_string(record.get("name_plan")),
                personal_points=parse_points_value(record.get("personal_points"), "personal points"),
                group_points=parse_points_value(record.get("group_points"), "group points"),
            )
        except ValueError as exc:
            errors.append(f"Row {row_number}: {exc}")
            continue
        seen.add(distributor_id)
        rows.append(row)

    return rows, errors


def ensure_period(
    session: Session,
    name_period: str,
    start_date: Any,
    end_date: Any,
    status: str = "closed",
) -> tuple[Period, bool]:
    existing = session.execute(select(Period).where(Period.name_period == name_period)).scalars().first()
    if existing is not None:
        return existing, False
    period = crud.create_period(
        session,
        name_period=name_period,
        start_date=parse_date_value(start_date, "start date"),
        end_date=parse_date_value(end_date, "end date"),
        status=status,
    )
    return period, True


def import_network(
    session: Session,
    source: str | Path | bytes,
    name_period: str,
    start_date: Any,
    end_date: Any,
    status: str = "closed",
    filename: str | None = None,
    currency_code: str | None = None,
) -> ImportSummary:
    """Load a snapshot file and store every valid row for the named period."""

    summary = ImportSummary()
    df = load_network_frame(source, filename=filename)
    rows, errors = parse_network_rows(df)
    summary.rows_read = len(df.dropna(how="all"))
    summary.errors.extend(errors)

    period, created = ensure_period(session, name_period, start_date, end_date, status=status)
    summary.period_id = period.id_period
    summary.period_created = created

    if rows:
        summary.rows_imported = crud.store_network_rows(session, period, rows, currency_code=currency_code)
        # Cached responses for "current period" queries may now be stale.
        get_cache().invalidate()
    if errors:
        logger.warning("Network import for %s skipped %d invalid rows", name_period, len(errors))
    return summary


__all__ = [
    "NETWORK_COLUMNS",
    "ImportSummary",
    "load_network_frame",
    "parse_network_rows",
    "ensure_period",
    "import_network",
]
