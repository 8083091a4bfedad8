"""Mini README: Tests for the JSON and SQL backup formats.

Structure:
    * structured document - camelCase shape, required arrays, field errors.
    * SQL script - quoting and loading into a fresh SQLite schema.
"""

from __future__ import annotations

import json

import pytest

from donation_ledger.backup import dataset_to_document, parse_document, render_sql, sql_literal
from donation_ledger.errors import InvalidSnapshot
from donation_ledger.storage.sqlite import SCHEMA, SqliteStorage, connect_sqlite


@pytest.fixture
def dataset(core, manager, seed_book):
    book = seed_book(start=5, end=9, assigned_to=manager.user_id)
    core.create_receipt(manager, book.id, giver_name="O'Brien", address="1 Main St", amount="100.00")
    core.create_receipt(manager, book.id, giver_name="Lee", address="2 Main St", amount="250.50", phone_number="555")
    expense_type = core.create_expense_type(manager, name="Utilities", description="Power; water")
    core.create_expense(manager, expense_type_id=expense_type.id, amount="75.25", expense_date="2024-05-02")
    core.publish_report(manager)
    return core.export_backup(manager)


def test_document_shape(dataset) -> None:
    """The JSON document carries every collection in camelCase."""

    document = dataset_to_document(dataset)

    assert document["formatVersion"] == 1
    assert set(document) >= {
        "users",
        "tasks",
        "receiptBooks",
        "receipts",
        "expenses",
        "expenseTypes",
        "publishedReports",
    }
    book = document["receiptBooks"][0]
    assert book["totalReceipts"] == 5
    assert book["startingReceiptNumber"] == 5
    assert document["receipts"][0]["amount"] == "100.00"
    assert document["users"][0]["role"] == "admin"


def test_parse_document_rebuilds_dataset(dataset) -> None:
    """Parsing an exported document yields the exported dataset."""

    text = json.dumps(dataset_to_document(dataset))
    assert parse_document(text) == dataset


def test_parse_document_requires_every_array(dataset) -> None:
    """A missing collection is a problem, not an implicit wipe."""

    document = dataset_to_document(dataset)
    del document["expenseTypes"]

    with pytest.raises(InvalidSnapshot) as info:
        parse_document(document)
    assert any(problem.startswith("expenseTypes") for problem in info.value.problems)


def test_parse_document_reports_field_errors(dataset) -> None:
    """Field errors are reported with their document path."""

    document = dataset_to_document(dataset)
    document["receipts"][0]["amount"] = "10.001"
    document["receiptBooks"][0]["totalReceipts"] = 99

    with pytest.raises(InvalidSnapshot) as info:
        parse_document(document)
    problems = info.value.problems
    assert any(problem.startswith("receipts.0.amount") for problem in problems)
    assert any(problem.startswith("receiptBooks.0.totalReceipts") for problem in problems)


@pytest.mark.parametrize("payload", ["not json", "[1, 2]"])
def test_parse_document_rejects_non_objects(payload) -> None:
    """Text that is not a JSON object is refused."""

    with pytest.raises(InvalidSnapshot):
        parse_document(payload)


def test_sql_literal_quoting() -> None:
    """SQL literals escape quotes and map NULL and booleans."""

    assert sql_literal(None) == "NULL"
    assert sql_literal(42) == "42"
    assert sql_literal(True) == "1"
    assert sql_literal("O'Brien") == "'O''Brien'"


def test_sql_script_loads_into_fresh_schema(dataset, tmp_path) -> None:
    """The SQL export loads into an empty database unchanged."""

    script = render_sql(dataset)
    assert script.splitlines()[4] == "BEGIN;"
    assert script.rstrip().endswith("COMMIT;")

    conn = connect_sqlite(tmp_path / "restored.db")
    conn.executescript(SCHEMA)
    conn.executescript(script)
    conn.close()

    restored = SqliteStorage(tmp_path / "restored.db")
    try:
        assert restored.dump() == dataset
    finally:
        restored.close()
