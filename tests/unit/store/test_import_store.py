"""Unit tests for the pending-import store."""

from __future__ import annotations

import pytest
import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

from bbimport.core.exceptions import TransactionError
from bbimport.models.entity import QueuedEntity
from bbimport.store import sql as sql_schema
from bbimport.store.import_store import ALREADY_IMPORTED, CREATED, SKIPPED, UPDATED, ImportStore


def _build_store(tmp_path, *, create_tables: bool = True, **kwargs):
    db_path = tmp_path / "imports.db"
    engine = sa.create_engine(f"sqlite:///{db_path}", future=True)
    if create_tables:
        sql_schema.METADATA.create_all(engine)
    factory = sessionmaker(bind=engine, future=True)
    return ImportStore(session_factory=factory, **kwargs), engine


def _entity(name: str = "Octavia E. Butler", last_edited: str = "2020-05-01T00:00:00", origin_id: str = "OL28208A"):
    return QueuedEntity.model_validate(
        {
            "entityType": "Author",
            "originId": origin_id,
            "source": "OPENLIBRARY",
            "lastEdited": last_edited,
            "data": {
                "alias": [{"name": name, "sortName": "Butler, Octavia E.", "languageId": 120, "default": True}],
                "beginDate": "1947-06-22",
            },
        }
    )


def test_first_import_creates_pending_row(tmp_path):
    store, engine = _build_store(tmp_path)
    try:
        result = store.import_record(_entity())
        assert result.status == CREATED
        assert result.import_id

        row = store.get_import(result.import_id)
        assert row["default_name"] == "Octavia E. Butler"
        assert row["entity_type"] == "Author"
        assert row["data"]["beginDate"] == "1947-06-22"
    finally:
        engine.dispose()


def test_repeated_import_is_skipped_by_default(tmp_path):
    store, engine = _build_store(tmp_path)
    try:
        first = store.import_record(_entity())
        second = store.import_record(_entity(name="Octavia Estelle Butler"))

        assert second.status == SKIPPED
        assert second.import_id == first.import_id
        assert store.get_import(first.import_id)["default_name"] == "Octavia E. Butler"
    finally:
        engine.dispose()


def test_update_pending_replaces_newer_data(tmp_path):
    store, engine = _build_store(tmp_path, existing_import_action="update pending")
    try:
        first = store.import_record(_entity())
        updated = store.import_record(_entity(name="Octavia Estelle Butler", last_edited="2021-01-01T00:00:00"))
        stale = store.import_record(_entity(name="O. Butler", last_edited="2019-01-01T00:00:00"))

        assert updated.status == UPDATED
        assert stale.status == SKIPPED
        assert updated.import_id == first.import_id
        assert store.get_import(first.import_id)["default_name"] == "Octavia Estelle Butler"
    finally:
        engine.dispose()


def test_accepted_import_is_reported_as_already_imported(tmp_path):
    store, engine = _build_store(tmp_path)
    try:
        first = store.import_record(_entity())
        store.mark_accepted(first.import_id, "f2a2a5bd-4f6c-4f49-9a4c-0e3d5b7a1c11")

        result = store.import_record(_entity(), existing_import_action="update pending")

        assert result.status == ALREADY_IMPORTED
        assert result.import_id == first.import_id
    finally:
        engine.dispose()


def test_distinct_origins_get_distinct_rows(tmp_path):
    store, engine = _build_store(tmp_path)
    try:
        first = store.import_record(_entity(origin_id="OL1A"))
        second = store.import_record(_entity(origin_id="OL2A"))
        assert first.import_id != second.import_id
        assert second.status == CREATED
    finally:
        engine.dispose()


def test_database_errors_become_transaction_errors(tmp_path):
    store, engine = _build_store(tmp_path, create_tables=False)
    try:
        with pytest.raises(TransactionError):
            store.import_record(_entity())
    finally:
        engine.dispose()


def test_entity_without_origin_is_rejected(tmp_path):
    store, engine = _build_store(tmp_path)
    try:
        entity = _entity().model_copy(update={"origin_id": None})
        with pytest.raises(ValueError):
            store.import_record(entity)
    finally:
        engine.dispose()
