"""Mini README: Backup export and restore for the donation ledger.

``replacer`` holds the exclusive, atomic bulk replace; ``document`` and
``sql_export`` provide the structured (JSON) and relational-statement (SQL)
serialisations of the same dataset.
"""

from .document import BackupDocument, dataset_to_document, dumps_document, parse_document
from .replacer import BulkReplacer, validate_snapshot
from .sql_export import render_sql, sql_literal

__all__ = [
    "BackupDocument",
    "BulkReplacer",
    "dataset_to_document",
    "dumps_document",
    "parse_document",
    "render_sql",
    "sql_literal",
    "validate_snapshot",
]
