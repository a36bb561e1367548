"""Unit tests for docshelf.documents.store — EntityStore CRUD, cascade, versions, access."""

import pytest

from docshelf.documents.models import PermissionLevel
from docshelf.documents.store import TAG_PALETTE, EntityStore
from docshelf.engine.errors import (
    DocShelfInvariantError,
    DocShelfNotFoundError,
    DocShelfUnknownUserError,
    DocShelfValidationError,
)


class TestStoreSetup:
    """Store seeding and current user tests."""

    def test_seeded(self, store):
        assert [u.id for u in store.users()] == ["user-1", "user-2", "user-3"]
        assert {t.name for t in store.tags()} == {"Important", "Work"}
        assert store.current_user_id == "user-1"

    def test_current_user_defaults_to_first(self):
        store = EntityStore(users=[{"id": "a", "name": "A"}, {"id": "b", "name": "B"}])
        assert store.current_user_id == "a"

    def test_current_user_must_exist(self, store):
        with pytest.raises(DocShelfUnknownUserError):
            store.current_user_id = "ghost"

    def test_duplicate_user(self, store):
        with pytest.raises(DocShelfValidationError, match="already exists"):
            store.add_user("Again", user_id="user-1")

    def test_no_actor(self):
        store = EntityStore()
        with pytest.raises(DocShelfValidationError, match="No acting user"):
            store.create_folder("Work")

    def test_repr(self, store):
        assert "users=3" in repr(store)


class TestDocuments:
    """Document CRUD tests."""

    def test_create(self, store, make_document, clock):
        doc = make_document("Report.pdf", size_bytes=2048)
        assert doc.id
        assert doc.owner_id == "user-1"
        assert doc.mime_type == "application/pdf"
        assert doc.file_type == "pdf"
        assert doc.folder_id is None
        assert doc.created_at == clock.now
        assert doc.updated_at == clock.now
        assert doc.current_version == 1
        assert [v.version_number for v in doc.versions] == [1]
        assert doc.versions[0].change_notes == "Initial upload"

    def test_owner_gets_admin_entry(self, make_document):
        doc = make_document()
        entry = doc.access_entry("user-1")
        assert entry.permission_level is PermissionLevel.ADMIN
        assert entry.user_name == "Demo User"

    def test_unknown_owner(self, make_document):
        with pytest.raises(DocShelfUnknownUserError):
            make_document(owner_id="ghost")

    def test_blank_name_rejected_nothing_committed(self, store, make_document):
        with pytest.raises(DocShelfValidationError) as exc_info:
            make_document("   ", tags=["Brand New"])
        assert exc_info.value.validation_errors[0]["field"] == "name"
        assert store.documents() == []
        assert store.find_tag("Brand New") is None

    def test_unknown_folder_rejected(self, make_document):
        with pytest.raises(DocShelfValidationError, match="does not exist"):
            make_document(folder_id="nope")

    def test_ids_unique(self, make_document):
        ids = {make_document(f"doc{i}.pdf").id for i in range(20)}
        assert len(ids) == 20

    def test_getters_return_copies(self, store, make_document):
        doc = make_document()
        copy = store.get_document(doc.id)
        copy.name = "Hacked"
        copy.tags.append("t1")
        stored = store.get_document(doc.id)
        assert stored.name == "Report.pdf"
        assert stored.tags == []

    def test_get_missing(self, store):
        assert store.get_document("missing") is None
        with pytest.raises(DocShelfNotFoundError):
            store.require_document("missing")

    def test_update(self, store, make_document, clock):
        doc = make_document()
        clock.tick()
        updated = store.update_document(doc.id, name="Renamed.pdf", description="Q3")
        assert updated.name == "Renamed.pdf"
        assert updated.description == "Q3"
        assert updated.updated_at == clock.now
        assert updated.created_at < updated.updated_at

    def test_update_missing(self, store):
        assert store.update_document("missing", name="x") is None

    def test_update_cannot_change_id(self, store, make_document):
        doc = make_document()
        with pytest.raises(DocShelfValidationError, match="cannot be changed"):
            store.update_document(doc.id, id="other")
        assert store.has_document(doc.id)

    def test_update_rejects_unknown_fields(self, store, make_document):
        doc = make_document()
        with pytest.raises(DocShelfValidationError, match="owner_id"):
            store.update_document(doc.id, owner_id="user-2")

    def test_update_cannot_repoint_content(self, store, make_document):
        doc = make_document()
        with pytest.raises(DocShelfValidationError, match="size_bytes, url"):
            store.update_document(doc.id, url="blob:docshelf/other", size_bytes=5)
        stored = store.get_document(doc.id)
        assert stored.url == "blob:docshelf/Report.pdf"
        assert stored.url == stored.latest_version().url

    def test_update_invalid_keeps_state(self, store, make_document):
        doc = make_document()
        with pytest.raises(DocShelfValidationError):
            store.update_document(doc.id, name="")
        assert store.get_document(doc.id).name == "Report.pdf"

    def test_move_to_root_alias(self, store, make_document):
        folder = store.create_folder("Work")
        doc = make_document(folder_id=folder.id)
        assert store.update_document(doc.id, folder_id="root").folder_id is None

    def test_delete(self, store, make_document):
        doc = make_document()
        assert store.delete_document(doc.id) is True
        assert store.delete_document(doc.id) is False
        assert store.get_document(doc.id) is None

    def test_mutations_recorded(self, store, make_document, activity):
        doc = make_document("Report.pdf")
        latest = activity.query(object_type="documents")[0]
        assert latest["event"] == "document_created"
        assert latest["message"] == 'Document "Report.pdf" added successfully'
        store.delete_document(doc.id)
        assert activity.latest().event == "document_deleted"


class TestVersions:
    """Version history tests."""

    def test_versions_dense(self, store, make_document):
        doc = make_document()
        for n in range(3):
            store.add_version(doc.id, url=f"blob:docshelf/v{n + 2}", size_bytes=10 * (n + 2))
        stored = store.get_document(doc.id)
        assert [v.version_number for v in stored.versions] == [1, 2, 3, 4]
        assert stored.current_version == 4
        assert stored.url == "blob:docshelf/v4"
        assert stored.size_bytes == 40

    def test_version_defaults(self, store, make_document):
        doc = make_document()
        version = store.add_version(doc.id, url="u2", size_bytes=5)
        assert version.change_notes == "Version 2"
        assert version.created_by == "user-1"

    def test_version_content_replaced_only_when_given(self, store, make_document):
        doc = make_document("notes.txt", content="old text")
        store.add_version(doc.id, url="u2", size_bytes=1)
        assert store.get_document(doc.id).content == "old text"
        store.add_version(doc.id, url="u3", size_bytes=1, content="new text")
        assert store.get_document(doc.id).content == "new text"

    def test_updated_at_refreshed(self, store, make_document, clock):
        doc = make_document()
        clock.tick()
        store.add_version(doc.id, url="u2", size_bytes=1)
        assert store.get_document(doc.id).updated_at == clock.now

    def test_missing_document(self, store):
        assert store.add_version("missing", url="u", size_bytes=1) is None

    def test_activity_message(self, store, make_document, activity):
        doc = make_document()
        store.add_version(doc.id, url="u2", size_bytes=1)
        assert activity.latest().message == "New version (v2) added successfully"
        assert activity.latest().data["version_number"] == 2


class TestFolders:
    """Folder CRUD and cascade tests."""

    def test_create(self, store):
        work = store.create_folder("Work")
        sub = store.create_folder("Reports", parent_id=work.id)
        assert work.parent_id is None
        assert sub.parent_id == work.id
        assert store.get_folder(sub.id).name == "Reports"

    def test_create_root_alias(self, store):
        assert store.create_folder("Top", parent_id="root").parent_id is None

    def test_blank_name(self, store):
        with pytest.raises(DocShelfValidationError):
            store.create_folder("  ")

    def test_missing_parent(self, store):
        with pytest.raises(DocShelfValidationError):
            store.create_folder("Orphan", parent_id="nope")

    def test_rename(self, store, activity):
        folder = store.create_folder("Work")
        assert store.update_folder(folder.id, name="Projects").name == "Projects"
        assert activity.latest().message == 'Folder renamed to "Projects"'

    def test_move_into_descendant_rejected(self, store):
        a = store.create_folder("A")
        b = store.create_folder("B", parent_id=a.id)
        c = store.create_folder("C", parent_id=b.id)
        with pytest.raises(DocShelfInvariantError) as exc_info:
            store.update_folder(a.id, parent_id=c.id)
        assert exc_info.value.invariant == "acyclic_folders"
        with pytest.raises(DocShelfInvariantError):
            store.update_folder(a.id, parent_id=a.id)
        assert store.get_folder(a.id).parent_id is None

    def test_move(self, store):
        a = store.create_folder("A")
        b = store.create_folder("B")
        assert store.update_folder(b.id, parent_id=a.id).parent_id == a.id
        assert store.folder_descendants(a.id) == [b.id]

    def test_update_missing(self, store):
        assert store.update_folder("missing", name="x") is None
        with pytest.raises(DocShelfNotFoundError):
            store.require_folder("missing")

    def test_cascade_delete(self, store, make_document, activity):
        a = store.create_folder("A")
        b = store.create_folder("B", parent_id=a.id)
        c = store.create_folder("C", parent_id=b.id)
        other = store.create_folder("Other")
        x = make_document("x.pdf", folder_id=b.id)
        y = make_document("y.pdf", folder_id=c.id)
        z = make_document("z.pdf", folder_id=other.id)

        assert store.delete_folder(a.id) is True

        remaining = {f.id for f in store.folders()}
        assert remaining == {other.id}
        assert store.get_document(x.id).folder_id is None
        assert store.get_document(y.id).folder_id is None
        assert store.get_document(z.id).folder_id == other.id

        entry = activity.latest()
        assert entry.message == "Folder deleted successfully"
        assert set(entry.data["affected_folders"]) == {a.id, b.id, c.id}
        assert set(entry.data["detached_documents"]) == {x.id, y.id}

    def test_delete_missing(self, store):
        assert store.delete_folder("missing") is False

    def test_delete_with_cycle_aborts(self, store, make_document):
        a = store.create_folder("A")
        b = store.create_folder("B", parent_id=a.id)
        doc = make_document(folder_id=b.id)
        # corrupt the hierarchy directly: A <-> B
        store._folders[a.id] = store._folders[a.id].model_copy(update={"parent_id": b.id})

        with pytest.raises(DocShelfInvariantError) as exc_info:
            store.delete_folder(a.id)

        assert exc_info.value.invariant == "acyclic_folders"
        assert {f.id for f in store.folders()} == {a.id, b.id}
        assert store.get_document(doc.id).folder_id == b.id


class TestTags:
    """Tag catalog tests."""

    def test_create_tag(self, store):
        tag = store.create_tag("Finance", color="#000000")
        assert store.get_tag(tag.id).name == "Finance"
        assert store.find_tag("finance").id == tag.id

    def test_duplicate_name(self, store):
        with pytest.raises(DocShelfValidationError, match="already exists"):
            store.create_tag("important")

    def test_document_tags_by_id_and_name(self, store, make_document):
        doc = make_document(tags=["t1", "work", "Brand New", "brand new"])
        new_tag = store.find_tag("Brand New")
        assert new_tag is not None
        assert new_tag.color in TAG_PALETTE
        assert doc.tags == ["t1", "t2", new_tag.id]

    def test_string_tags_rejected(self, store, make_document):
        with pytest.raises(DocShelfValidationError, match="list of ids or names"):
            make_document(tags="Work")
        doc = make_document()
        with pytest.raises(DocShelfValidationError):
            store.update_document(doc.id, tags="Work")
        assert {t.name for t in store.tags()} == {"Important", "Work"}
        assert store.get_document(doc.id).tags == []

    def test_tag_untag(self, store, make_document):
        doc = make_document()
        assert store.tag_document(doc.id, "Important").tags == ["t1"]
        assert store.untag_document(doc.id, "t1") is True
        assert store.untag_document(doc.id, "t1") is False
        assert store.tag_document("missing", "t1") is None

    def test_rename_clash(self, store):
        with pytest.raises(DocShelfValidationError):
            store.update_tag("t2", name="IMPORTANT")
        assert store.update_tag("t2", color="#111111").color == "#111111"

    def test_delete_tag_strips_documents(self, store, make_document, clock):
        doc = make_document(tags=["t1", "t2"])
        clock.tick()
        assert store.delete_tag("t1") is True
        stored = store.get_document(doc.id)
        assert stored.tags == ["t2"]
        assert stored.updated_at == clock.now
        assert store.delete_tag("t1") is False


class TestAccess:
    """Access list tests."""

    def test_grant_and_upsert(self, store, make_document):
        doc = make_document()
        entry = store.set_access(doc.id, "user-2", "view")
        assert entry.user_name == "Jane Smith"
        store.set_access(doc.id, "user-2", PermissionLevel.EDIT)
        stored = store.get_document(doc.id)
        assert [e.user_id for e in stored.access_list] == ["user-1", "user-2"]
        assert stored.access_entry("user-2").permission_level is PermissionLevel.EDIT

    def test_unknown_user(self, store, make_document):
        doc = make_document()
        with pytest.raises(DocShelfUnknownUserError) as exc_info:
            store.set_access(doc.id, "ghost", "view")
        assert exc_info.value.user_id == "ghost"

    def test_invalid_level(self, store, make_document):
        doc = make_document()
        with pytest.raises(DocShelfValidationError):
            store.set_access(doc.id, "user-2", "superuser")

    def test_owner_cannot_be_downgraded(self, store, make_document):
        doc = make_document()
        with pytest.raises(DocShelfValidationError, match="must stay admin"):
            store.set_access(doc.id, "user-1", "view")
        assert store.set_access(doc.id, "user-1", "admin").permission_level is PermissionLevel.ADMIN

    def test_missing_document(self, store):
        assert store.set_access("missing", "user-2", "view") is None

    def test_remove_access(self, store, make_document, activity):
        doc = make_document()
        store.set_access(doc.id, "user-2", "view")
        assert activity.latest().message == "Permission updated for Jane Smith"
        assert store.remove_access(doc.id, "user-2") is True
        assert store.remove_access(doc.id, "user-2") is False
        with pytest.raises(DocShelfValidationError):
            store.remove_access(doc.id, "user-1")


class TestAnnotations:
    """Annotation tests."""

    def test_add_and_list(self, store, make_document):
        doc = make_document()
        note = store.add_annotation(doc.id, page=2, content="Check this", position={"x": 10, "y": 20})
        store.add_annotation(doc.id, page=3, type="highlight")
        assert note.position.page == 2
        assert note.created_by == "user-1"
        assert len(store.annotations(doc.id)) == 2
        assert [a.id for a in store.annotations(doc.id, page=2)] == [note.id]

    def test_position_page_follows_annotation(self, store, make_document):
        doc = make_document()
        note = store.add_annotation(doc.id, page=1, position={"page": 3, "x": 5, "y": 5})
        assert note.page == 1
        assert note.position.page == 1
        assert [a.id for a in store.annotations(doc.id, page=1)] == [note.id]

    def test_invalid_page(self, store, make_document):
        doc = make_document()
        with pytest.raises(DocShelfValidationError):
            store.add_annotation(doc.id, page=0)

    def test_missing_document(self, store):
        assert store.add_annotation("missing", page=1) is None
        assert store.annotations("missing") == []

    def test_remove_idempotent(self, store, make_document):
        doc = make_document()
        note = store.add_annotation(doc.id, page=1, content="x")
        assert store.remove_annotation(doc.id, note.id) is True
        assert store.remove_annotation(doc.id, note.id) is False
        assert store.annotations(doc.id) == []
