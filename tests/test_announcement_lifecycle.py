from datetime import date

from bulletin.models import Announcement, AnnouncementView, Attachment
from bulletin.repositories import announcement_repository as repo
from bulletin.services.announcement_lifecycle import batch_delete, duplicate, duplicate_title
from conftest import FakeIndexClient


def _synced(db, index, make_announcement, **fields):
    item = make_announcement(**fields)
    created = index.create(item.title, "text")
    repo.set_external_document_id(db, item.id, created.document_id)
    db.commit()
    return item, created.document_id


def _rows(db, model):
    db.expire_all()
    return db.query(model).count()


class TestBatchDelete:
    def test_removes_every_store(self, db, index, blob_store, make_announcement, add_attachment):
        first, doc1 = _synced(db, index, make_announcement, title="First")
        second, doc2 = _synced(db, index, make_announcement, title="Second")
        paths = [
            add_attachment(first, "a.pdf", b"a", 0).stored_file_path,
            add_attachment(first, "b.pdf", b"b", 1).stored_file_path,
            add_attachment(second, "c.pdf", b"c", 0).stored_file_path,
        ]
        repo.record_view(db, first.id)
        repo.record_view(db, second.id)
        db.commit()

        result = batch_delete(db, [first.id, second.id], index, blob_store)

        assert result.deleted_count == 2
        assert result.errors == []
        assert index.documents == {}
        assert sorted(d for m, d in index.calls if m == "delete") == sorted([doc1, doc2])
        assert not any(blob_store.exists(p) for p in paths)
        assert _rows(db, Announcement) == 0
        assert _rows(db, Attachment) == 0
        assert _rows(db, AnnouncementView) == 0

    def test_index_failure_does_not_block_rows(self, db, index, blob_store, make_announcement, add_attachment):
        item, doc = _synced(db, index, make_announcement)
        add_attachment(item, "a.pdf")
        index.failing_deletes.add(doc)

        result = batch_delete(db, [item.id], index, blob_store)

        assert result.deleted_count == 1
        assert len(result.errors) == 1
        assert doc in result.errors[0]
        assert doc in index.documents
        assert _rows(db, Announcement) == 0
        assert _rows(db, Attachment) == 0

    def test_unconfigured_index_still_deletes(self, db, blob_store, make_announcement):
        item = make_announcement(external_document_id="doc-stale")
        index = FakeIndexClient(configured=False)

        result = batch_delete(db, [item.id], index, blob_store)

        assert result.deleted_count == 1
        assert "configuration missing" in result.errors[0]
        assert index.count("delete") == 0
        assert _rows(db, Announcement) == 0

    def test_unsynced_and_unknown_ids(self, db, index, blob_store, make_announcement):
        item = make_announcement()

        result = batch_delete(db, [item.id, "does-not-exist", item.id], index, blob_store)

        assert result.deleted_count == 1
        assert index.calls == []

    def test_empty_request_is_a_no_op(self, db, index, blob_store, make_announcement):
        make_announcement()

        result = batch_delete(db, ["", None], index, blob_store)

        assert result.deleted_count == 0
        assert _rows(db, Announcement) == 1

    def test_other_announcements_untouched(self, db, index, blob_store, make_announcement, add_attachment):
        gone = make_announcement(title="Gone")
        kept = make_announcement(title="Kept")
        kept_path = add_attachment(kept, "keep.pdf").stored_file_path

        batch_delete(db, [gone.id], index, blob_store)

        db.expire_all()
        assert repo.get_announcement(db, kept.id) is not None
        assert blob_store.exists(kept_path)


class TestDuplicate:
    def test_title_format(self):
        assert duplicate_title("Merit Scholarship", date(2026, 3, 7)) == "Merit Scholarship_0307_copy"

    def test_clone_is_inactive_and_unsynced(self, db, index, blob_store, make_announcement, add_attachment):
        source, _ = _synced(
            db, index, make_announcement,
            internal_id="SCH-01",
            external_urls=[{"name": "Guide", "url": "https://example.org/guide"}],
        )
        add_attachment(source, "form.pdf", b"form", 0)

        result = duplicate(db, source.id, blob_store, today=date(2026, 10, 19))

        db.expire_all()
        clone = repo.get_announcement(db, result.new_announcement_id)
        assert clone.id != source.id
        assert clone.title == "Merit Scholarship_1019_copy"
        assert result.title == clone.title
        assert clone.is_active is False
        assert clone.external_document_id is None
        assert clone.internal_id == "SCH-01"
        assert clone.external_urls == [{"name": "Guide", "url": "https://example.org/guide"}]
        assert repo.get_announcement(db, source.id).external_document_id is not None

    def test_attachments_get_fresh_blobs(self, db, blob_store, make_announcement, add_attachment):
        source = make_announcement()
        originals = [
            add_attachment(source, "one.pdf", b"1", 0),
            add_attachment(source, "two.pdf", b"2", 1),
        ]

        result = duplicate(db, source.id, blob_store)

        copies = repo.list_attachments(db, result.new_announcement_id)
        assert result.attachments_copied == 2
        assert [(c.file_name, c.display_order) for c in copies] == [("one.pdf", 0), ("two.pdf", 1)]
        assert {c.stored_file_path for c in copies}.isdisjoint(o.stored_file_path for o in originals)
        assert blob_store.resolve(copies[1].stored_file_path).read_bytes() == b"2"

    def test_missing_blob_is_skipped(self, db, blob_store, make_announcement, add_attachment):
        source = make_announcement()
        add_attachment(source, "one.pdf", b"1", 0)
        lost = add_attachment(source, "two.pdf", b"2", 1)
        add_attachment(source, "three.pdf", b"3", 2)
        blob_store.resolve(lost.stored_file_path).unlink()

        result = duplicate(db, source.id, blob_store)

        copies = repo.list_attachments(db, result.new_announcement_id)
        assert result.attachments_copied == 2
        assert result.skipped == ["two.pdf"]
        assert [(c.file_name, c.display_order) for c in copies] == [("one.pdf", 0), ("three.pdf", 1)]

    def test_unknown_source(self, db, blob_store):
        assert duplicate(db, "missing", blob_store) is None
