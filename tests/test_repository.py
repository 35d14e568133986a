from datetime import date, datetime

import pytest

from quote_tracker import RecordNotFound, StoreError


def test_insert_assigns_id_and_normalises_blank_remarks(repository, quotation_fields):
    created = repository.insert(quotation_fields)

    assert created.id
    assert created.sl_number == 400
    assert created.date == date(2024, 3, 1)
    assert created.time_in == datetime(2024, 3, 1, 9, 30)
    assert created.remarks is None
    assert created.quote_number is None
    assert repository.get(created.id) == created


def test_list_orders_by_date_descending(repository, quotation_fields):
    older = repository.insert({**quotation_fields, "date": date(2024, 1, 5)})
    newest = repository.insert({**quotation_fields, "date": date(2024, 5, 9)})
    middle = repository.insert({**quotation_fields, "date": "2024-03-15"})

    assert [q.id for q in repository.list()] == [newest.id, middle.id, older.id]


def test_update_rewrites_fields_but_keeps_id(repository, quotation_fields):
    created = repository.insert(quotation_fields)

    repository.update(
        created.id,
        {
            "status": "quoted",
            "quote_number": "Q-2024-17",
            "quoted_date": date(2024, 3, 4),
            "client": "Acme Traders Ltd",
        },
    )
    updated = repository.get(created.id)

    assert updated.id == created.id
    assert updated.status == "quoted"
    assert updated.quote_number == "Q-2024-17"
    assert updated.quoted_date == date(2024, 3, 4)
    assert updated.client == "Acme Traders Ltd"
    assert updated.item == created.item


def test_get_and_update_missing_record_raise_not_found(repository):
    with pytest.raises(RecordNotFound):
        repository.get("missing")
    with pytest.raises(RecordNotFound):
        repository.update("missing", {"status": "hold"})


def test_delete_removes_record_from_list(repository, quotation_fields):
    keep = repository.insert(quotation_fields)
    doomed = repository.insert({**quotation_fields, "sl_number": 401})

    repository.delete(doomed.id)

    assert [q.id for q in repository.list()] == [keep.id]
    with pytest.raises(RecordNotFound):
        repository.get(doomed.id)


@pytest.mark.parametrize("bad_value", ["abc", 12.5, float("nan")])
def test_non_integer_sl_number_is_rejected(repository, quotation_fields, bad_value):
    with pytest.raises(StoreError):
        repository.insert({**quotation_fields, "sl_number": bad_value})
    assert repository.list() == []


def test_missing_required_fields_are_rejected(repository, quotation_fields):
    with pytest.raises(StoreError, match="sl_number"):
        repository.insert({**quotation_fields, "sl_number": None})


def test_unknown_enum_values_are_stored_as_is(repository, quotation_fields):
    created = repository.insert({**quotation_fields, "status": "approved"})

    assert repository.get(created.id).status == "approved"


def test_count_purchase_orders(repository):
    assert repository.count_purchase_orders() == 0
    with repository.db.begin() as conn:
        conn.execute("INSERT INTO purchase_orders (id, po_number) VALUES ('po1', 'PO-1')")
        conn.execute("INSERT INTO purchase_orders (id, po_number) VALUES ('po2', 'PO-2')")

    assert repository.count_purchase_orders() == 2


def test_store_failures_are_wrapped(tmp_path):
    from quote_tracker import Database, QuotationRepository

    repository = QuotationRepository(Database(tmp_path / "empty.db"))

    with pytest.raises(StoreError):
        repository.list()


def test_failed_transaction_is_rolled_back(repository):
    with pytest.raises(StoreError, match="Failed to import orders"):
        with repository.db.begin("import orders") as conn:
            conn.execute("INSERT INTO purchase_orders (id, po_number) VALUES ('po1', 'PO-1')")
            conn.execute("INSERT INTO missing_table VALUES (1)")

    assert repository.count_purchase_orders() == 0


def test_non_store_errors_roll_back_and_propagate(repository):
    with pytest.raises(KeyError):
        with repository.db.begin() as conn:
            conn.execute("INSERT INTO purchase_orders (id, po_number) VALUES ('po1', 'PO-1')")
            raise KeyError("po_number")

    assert repository.count_purchase_orders() == 0
