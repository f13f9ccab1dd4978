"""
Tamper evidence on stored version snapshots.

Rows are rewritten at the table level, bypassing the ORM listeners, to
simulate edits made directly in the database.  The next load must refuse
the document instead of returning a silently altered history.
"""

import pytest
from sqlalchemy import delete, select, update

from docflow_kernel.exceptions import TamperDetectedError, VersionSequenceError
from docflow_kernel.models.document import DocumentVersionModel
from docflow_kernel.services.document_store import VersionedDocumentStore
from docflow_kernel.utils.hashing import hash_snapshot

_versions = DocumentVersionModel.__table__


@pytest.fixture
def sql_store(sql_repository, deterministic_clock):
    return VersionedDocumentStore(sql_repository, deterministic_clock)


class TestSnapshotHash:

    def test_hash_covers_identity(self, sql_store, session):
        doc_id = sql_store.create({"title": "t"}, "u1")
        session.expire_all()
        row = session.scalars(select(DocumentVersionModel)).one()

        assert row.payload_hash == hash_snapshot(doc_id, 1, {"title": "t"}, None)
        assert row.payload_hash != hash_snapshot(doc_id, 2, {"title": "t"}, None)

    def test_edited_payload_detected(self, sql_store, session, captured_logs):
        doc_id = sql_store.create({"title": "t", "amount": "100"}, "u1")
        session.execute(
            update(_versions)
            .where(_versions.c.version == 1)
            .values(payload={"title": "t", "amount": "1"})
        )
        session.expire_all()

        with pytest.raises(TamperDetectedError) as exc_info:
            sql_store.get(doc_id)

        assert exc_info.value.version == 1
        assert any(r["message"] == "snapshot_tamper_detected" for r in captured_logs())

    def test_edited_lock_type_detected(self, sql_store, session):
        doc_id = sql_store.create({"title": "t"}, "u1")
        session.execute(
            update(_versions).where(_versions.c.version == 1).values(lock_type="contract")
        )
        session.expire_all()

        with pytest.raises(TamperDetectedError):
            sql_store.get(doc_id)

    def test_removed_version_detected(self, sql_store, session):
        doc_id = sql_store.create({"title": "t"}, "u1")
        sql_store.create_new_version(doc_id, {"title": "t2"}, "u1")
        sql_store.create_new_version(doc_id, {"title": "t3"}, "u1")
        session.execute(delete(_versions).where(_versions.c.version == 2))
        session.expire_all()

        with pytest.raises(VersionSequenceError) as exc_info:
            sql_store.get(doc_id)

        assert exc_info.value.versions == (1, 3)

    def test_untouched_history_loads(self, sql_store, session):
        doc_id = sql_store.create({"title": "t"}, "u1")
        sql_store.create_new_version(doc_id, {"title": "t2"}, "u1")
        session.expire_all()

        assert [s.version for s in sql_store.history(doc_id)] == [1, 2]
