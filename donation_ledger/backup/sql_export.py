"""Mini README: Relational-statement (SQL) form of a ledger backup.

Structure:
    * sql_literal - quote a Python value as an SQL literal.
    * render_sql - one ``INSERT`` per row, roots before leaves, in a single
      transaction.

The script mirrors the restore semantics: by default it first deletes the
existing rows leaves first and then inserts the backup rows roots first, all
between ``BEGIN`` and ``COMMIT``, so loading it into a database created with
the SQLite backend schema is itself an all-or-nothing replace.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from ..domain import Dataset, utc_now
from ..storage.sqlite import to_column
from ..storage.tables import DELETE_ORDER, INSERT_ORDER, table


def sql_literal(value: object) -> str:
    """Render ``value`` as an SQL literal with single quotes escaped."""

    stored = to_column(value)
    if stored is None:
        return "NULL"
    if isinstance(stored, int):
        return str(stored)
    return "'" + str(stored).replace("'", "''") + "'"


def render_sql(
    dataset: Dataset,
    generated_at: Optional[datetime] = None,
    *,
    replace_existing: bool = True,
) -> str:
    """Return the backup as an SQL script."""

    lines: List[str] = [
        "-- Donation ledger backup",
        f"-- Generated on {(generated_at or utc_now()).isoformat()}",
        "-- Rows are ordered roots before leaves so the script loads with foreign keys enforced.",
        "",
        "BEGIN;",
    ]
    if replace_existing:
        lines.append("")
        lines.extend(f"DELETE FROM {name};" for name in DELETE_ORDER)

    for name in INSERT_ORDER:
        spec = table(name)
        records = dataset.collection(name)
        lines.append("")
        lines.append(f"-- {name} ({len(records)} rows)")
        column_list = ", ".join(spec.columns)
        for record in records:
            values = ", ".join(sql_literal(getattr(record, column)) for column in spec.columns)
            lines.append(f"INSERT INTO {name} ({column_list}) VALUES ({values});")

    lines.extend(["", "COMMIT;", ""])
    return "\n".join(lines)
