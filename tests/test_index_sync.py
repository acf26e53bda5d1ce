from bulletin.models.announcement import Announcement
from bulletin.services.index_client import IndexOutcome
from bulletin.services.index_sync import delete_index_entry, rebuild_index, sync_announcement

from conftest import FakeIndexClient


def _stored_id(db, announcement_id):
    db.expire_all()
    return db.get(Announcement, announcement_id).external_document_id


def test_first_sync_creates_once_and_stores_id(db, index, make_announcement):
    item = make_announcement()

    result = sync_announcement(db, item.id, index)

    assert result.ok
    assert index.count("create") == 1
    assert index.count("update") == 0
    assert _stored_id(db, item.id) == result.document_id
    title, text = index.documents[result.document_id]
    assert title == "Merit Scholarship"
    assert "Summary: Up to 50,000 per year" in text


def test_synced_announcement_is_updated_in_place(db, index, make_announcement):
    item = make_announcement()
    first = sync_announcement(db, item.id, index)
    index.calls.clear()

    second = sync_announcement(db, item.id, index)

    assert second.ok
    assert index.calls == [("update", first.document_id)]
    assert _stored_id(db, item.id) == first.document_id


def test_drift_is_repaired_with_one_create(db, index, make_announcement):
    item = make_announcement()
    old_id = sync_announcement(db, item.id, index).document_id
    index.documents.clear()  # the index lost the document
    index.calls.clear()

    repaired = sync_announcement(db, item.id, index)

    assert repaired.ok
    assert repaired.document_id != old_id
    assert index.calls == [("update", old_id), ("create", None)]
    assert _stored_id(db, item.id) == repaired.document_id

    index.calls.clear()
    sync_announcement(db, item.id, index)
    assert index.calls == [("update", repaired.document_id)]


def test_failed_create_leaves_reference_untouched(db, index, make_announcement):
    item = make_announcement()
    index.fail_next["create"] = IndexOutcome.TRANSIENT

    result = sync_announcement(db, item.id, index)

    assert not result.ok
    assert result.outcome is IndexOutcome.TRANSIENT
    assert _stored_id(db, item.id) is None
    assert sync_announcement(db, item.id, index).ok


def test_failed_update_keeps_existing_reference(db, index, make_announcement):
    item = make_announcement()
    doc_id = sync_announcement(db, item.id, index).document_id
    index.fail_next["update"] = IndexOutcome.TRANSIENT

    result = sync_announcement(db, item.id, index)

    assert not result.ok
    assert index.count("create") == 1
    assert _stored_id(db, item.id) == doc_id


def test_failed_drift_repair_keeps_stale_reference(db, index, make_announcement):
    item = make_announcement()
    doc_id = sync_announcement(db, item.id, index).document_id
    index.documents.clear()
    index.fail_next["create"] = IndexOutcome.REJECTED

    assert not sync_announcement(db, item.id, index).ok
    assert _stored_id(db, item.id) == doc_id


def test_unconfigured_index_is_reported_without_calls(db, make_announcement):
    item = make_announcement()
    index = FakeIndexClient(configured=False)

    result = sync_announcement(db, item.id, index)

    assert not result.ok
    assert result.outcome is IndexOutcome.CONFIGURATION_MISSING
    assert index.calls == []


def test_unknown_announcement(db, index):
    result = sync_announcement(db, "missing", index)

    assert not result.ok
    assert result.error == "Announcement not found"


def test_delete_without_reference_makes_no_call(db, index, make_announcement):
    item = make_announcement()

    assert delete_index_entry(db, item.id, index) is True
    assert index.calls == []


def test_delete_is_idempotent_for_absent_document(db, index):
    assert delete_index_entry(db, "doc-gone", index, is_doc_id=True) is True
    assert delete_index_entry(db, "doc-gone", index, is_doc_id=True) is True
    assert index.count("delete") == 2


def test_delete_by_announcement_clears_reference(db, index, make_announcement):
    item = make_announcement()
    doc_id = sync_announcement(db, item.id, index).document_id

    assert delete_index_entry(db, item.id, index) is True

    assert doc_id not in index.documents
    assert _stored_id(db, item.id) is None


def test_failed_delete_returns_false_and_keeps_reference(db, index, make_announcement):
    item = make_announcement()
    doc_id = sync_announcement(db, item.id, index).document_id
    index.failing_deletes.add(doc_id)

    assert delete_index_entry(db, item.id, index) is False
    assert _stored_id(db, item.id) == doc_id


def test_rebuild_reuploads_active_and_clears_inactive(db, index, make_announcement):
    active = make_announcement(title="Active")
    inactive = make_announcement(title="Draft", is_active=False)
    sync_announcement(db, active.id, index)
    sync_announcement(db, inactive.id, index)
    index.documents["orphan"] = ("Orphan", "")
    old_ids = set(index.documents)

    result = rebuild_index(db, index)

    assert result.ok
    assert result.count == 1
    assert not old_ids & set(index.documents)
    assert _stored_id(db, active.id) in index.documents
    assert _stored_id(db, inactive.id) is None
    assert len(index.documents) == 1
