"""
Tests for folder membership and folder management
"""

import pytest
from pydantic import ValidationError

from recap.exceptions import NotFoundError
from recap.schemas import FolderCreate, FolderUpdate
from recap.services.folders import AssignmentOutcome, FolderManager, FolderMembershipResolver
from recap.store.records import RecordStore

OWNER = "user-1"
OTHER_OWNER = "user-2"


@pytest.fixture
def resolver(store):
    return FolderMembershipResolver(store)


@pytest.fixture
def manager(store):
    return FolderManager(store)


@pytest.mark.integration
class TestUnorganized:
    def test_upload_without_folder_is_unorganized(self, resolver, make):
        loose = make.upload(file_name="loose.mp3", minutes=2).id
        filed = make.upload(file_name="filed.mp3", minutes=1)
        make.link(filed, make.folder())

        assert [v.id for v in resolver.list_unorganized(OWNER)] == [loose]
        assert resolver.unorganized_count(OWNER) == 1

    def test_upload_in_several_folders_is_organized(self, resolver, make):
        upload = make.upload()
        make.link(upload, make.folder(name="A"))
        make.link(upload, make.folder(name="B"))

        assert resolver.list_unorganized(OWNER) == []

    def test_other_owners_uploads_never_listed(self, resolver, make):
        make.upload(owner=OTHER_OWNER)
        assert resolver.list_unorganized(OWNER) == []

    def test_newest_first(self, resolver, make):
        ids = [make.upload(file_name=f"{i}.mp3", minutes=i).id for i in range(3)]
        assert [v.id for v in resolver.list_unorganized(OWNER)] == list(reversed(ids))

    def test_reflects_latest_state(self, resolver, make):
        upload = make.upload()
        folder = make.folder()
        assert resolver.unorganized_count(OWNER) == 1

        resolver.assign(upload.id, folder.id, OWNER)
        assert resolver.unorganized_count(OWNER) == 0

        resolver.unassign(upload.id, folder.id, OWNER)
        assert resolver.unorganized_count(OWNER) == 1


@pytest.mark.integration
class TestAssignment:
    def test_assign_then_duplicate(self, resolver, make):
        upload = make.upload()
        folder = make.folder()

        assert resolver.assign(upload.id, folder.id, OWNER) == AssignmentOutcome.CREATED
        assert resolver.assign(upload.id, folder.id, OWNER) == AssignmentOutcome.ALREADY_ASSIGNED

    def test_cannot_assign_into_foreign_folder(self, resolver, make):
        upload = make.upload()
        foreign = make.folder(owner=OTHER_OWNER)

        with pytest.raises(NotFoundError, match="Folder not found"):
            resolver.assign(upload.id, foreign.id, OWNER)

    def test_cannot_assign_foreign_upload(self, resolver, make):
        foreign = make.upload(owner=OTHER_OWNER)
        folder = make.folder()

        with pytest.raises(NotFoundError, match="Upload not found"):
            resolver.assign(foreign.id, folder.id, OWNER)

    def test_assign_many_reports_each_outcome(self, resolver, make):
        a = make.upload(file_name="a.mp3").id
        b = make.upload(file_name="b.mp3").id
        folder_id = make.folder().id
        resolver.assign(a, folder_id, OWNER)

        outcomes = resolver.assign_many([a, b, b], folder_id, OWNER)

        assert outcomes == {a: AssignmentOutcome.ALREADY_ASSIGNED, b: AssignmentOutcome.CREATED}

    def test_assign_many_writes_nothing_when_an_upload_is_missing(self, resolver, make, store):
        a = make.upload().id
        folder_id = make.folder().id

        with pytest.raises(NotFoundError):
            resolver.assign_many([a, "missing"], folder_id, OWNER)

        assert store.select("upload_folders", {"folder_id": folder_id}) == []

    def test_unassign(self, resolver, make):
        upload = make.upload()
        folder = make.folder()
        make.link(upload, folder)

        assert resolver.unassign(upload.id, folder.id, OWNER) is True
        assert resolver.unassign(upload.id, folder.id, OWNER) is False

    def test_unassign_many_ignores_foreign_uploads(self, resolver, make, store):
        mine = make.upload()
        folder = make.folder()
        make.link(mine, folder)

        assert resolver.unassign_many([mine.id, "someone-elses"], folder.id, OWNER) == 1
        assert store.select("upload_folders", {"folder_id": folder.id}) == []


@pytest.mark.integration
class TestFolderContents:
    def test_folder_uploads_and_available(self, resolver, make):
        inside = make.upload(file_name="in.mp3", minutes=1)
        elsewhere = make.upload(file_name="elsewhere.mp3", minutes=2)
        loose = make.upload(file_name="loose.mp3", minutes=3)
        folder = make.folder(name="Target")
        make.link(inside, folder)
        make.link(elsewhere, make.folder(name="Other"))

        assert [v.id for v in resolver.list_folder_uploads(folder.id, OWNER)] == [inside.id]
        # Uploads in other folders can still be added here
        assert [v.id for v in resolver.list_available_uploads(folder.id, OWNER)] == [loose.id, elsewhere.id]

    def test_foreign_folder_contents_not_found(self, resolver, make):
        foreign = make.folder(owner=OTHER_OWNER)
        with pytest.raises(NotFoundError):
            resolver.list_folder_uploads(foreign.id, OWNER)
        with pytest.raises(NotFoundError):
            resolver.list_available_uploads(foreign.id, OWNER)


@pytest.mark.integration
class TestFolderManager:
    def test_create_uses_default_color(self, manager):
        folder = manager.create_folder(OWNER, FolderCreate(name="  Lectures  ", description=""))

        assert folder.name == "Lectures"
        assert folder.description is None
        assert folder.color == "#3B82F6"
        assert folder.upload_count == 0

    def test_list_folders_with_stats(self, manager, make):
        empty = make.folder(name="Empty", minutes=1)
        full = make.folder(name="Full", minutes=2)
        make.link(make.upload(file_name="a.mp3", minutes=5), full)
        make.link(make.upload(file_name="b.mp3", minutes=9), full)

        folders = manager.list_folders(OWNER)

        assert [f.name for f in folders] == ["Full", "Empty"]
        assert folders[0].upload_count == 2
        assert folders[0].latest_upload.minute == 9
        assert folders[1].id == empty.id
        assert folders[1].latest_upload is None

    def test_update_folder(self, manager, make):
        folder = make.folder(name="Old", description="keep me")

        updated = manager.update_folder(folder.id, OWNER, FolderUpdate(name="New", color="#ff0000"))

        assert updated.name == "New"
        assert updated.color == "#FF0000"
        assert updated.description == "keep me"

    def test_update_can_clear_description(self, manager, make):
        folder = make.folder(description="text")
        updated = manager.update_folder(folder.id, OWNER, FolderUpdate(description=None))
        assert updated.description is None

    def test_update_foreign_folder_not_found(self, manager, make):
        foreign = make.folder(owner=OTHER_OWNER)
        with pytest.raises(NotFoundError):
            manager.update_folder(foreign.id, OWNER, FolderUpdate(name="Mine now"))

    def test_delete_folder_keeps_uploads(self, manager, resolver, make):
        upload = make.upload()
        folder = make.folder()
        make.link(upload, folder)
        upload_id, folder_id = upload.id, folder.id

        manager.delete_folder(folder_id, OWNER)

        assert manager.list_folders(OWNER) == []
        assert [v.id for v in resolver.list_unorganized(OWNER)] == [upload_id]
        with pytest.raises(NotFoundError):
            manager.delete_folder(folder_id, OWNER)

    def test_delete_folders_without_cascade_support(self, db_session_no_fk, make_no_fk):
        store = RecordStore(db_session_no_fk)
        upload = make_no_fk.upload()
        folder = make_no_fk.folder()
        make_no_fk.link(upload, folder)
        folder_id = folder.id

        assert FolderManager(store).delete_folders([folder_id], OWNER) == 1
        assert store.select("upload_folders", {"folder_id": folder_id}) == []

    def test_delete_foreign_folder_is_noop(self, manager, make):
        foreign_id = make.folder(owner=OTHER_OWNER).id
        assert manager.delete_folders([foreign_id], OWNER) == 0


@pytest.mark.unit
class TestFolderValidation:
    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    def test_bad_names(self, name):
        with pytest.raises(ValidationError):
            FolderCreate(name=name)

    @pytest.mark.parametrize("color", ["blue", "#12345", "#GGGGGG", "3B82F6"])
    def test_bad_colors(self, color):
        with pytest.raises(ValidationError):
            FolderCreate(name="ok", color=color)

    def test_color_is_normalized(self):
        assert FolderCreate(name="ok", color="#abcdef").color == "#ABCDEF"
