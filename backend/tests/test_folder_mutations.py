"""Tests for folder create, rename, move, delete and listing."""

import pytest

from sharetree.exceptions import (
    CycleDetectedError,
    DepthLimitExceededError,
    FolderNotFoundError,
    NameConflictError,
    PermissionDeniedError,
    RootFolderProtectedError,
    ValidationError,
)
from sharetree.models import FavoriteMark, File, Folder, PermissionGrant, PermissionLevel, TargetType
from sharetree.services.favorite_service import FavoriteService
from sharetree.services.path_service import PathService
from sharetree.services.permission_service import PermissionService
from sharetree.services.propagation_service import PropagationService


def _folder(mutations, account, parent_id, name):
    return mutations.create_folder(account.identity, parent_id, name).folders[0].id


class TestCreateFolder:

    def test_create_in_root_when_parent_omitted(self, db, mutations, alice):
        outcome = mutations.create_folder(alice.identity, None, "Docs")
        folder = outcome.folders[0]
        assert folder.parent_id == alice.root_id
        assert folder.owner_id == alice.user_id
        assert not outcome.degraded

    def test_name_is_trimmed(self, mutations, alice):
        folder = mutations.create_folder(alice.identity, None, "  Docs  ").folders[0]
        assert folder.name == "Docs"

    def test_sibling_name_conflict(self, mutations, alice):
        _folder(mutations, alice, None, "Docs")
        with pytest.raises(NameConflictError):
            mutations.create_folder(alice.identity, None, "Docs")

    def test_same_name_under_different_parents(self, mutations, alice):
        a = _folder(mutations, alice, None, "A")
        b = _folder(mutations, alice, None, "B")
        _folder(mutations, alice, a, "Shared")
        _folder(mutations, alice, b, "Shared")

    @pytest.mark.parametrize("name", ["", "   ", "a/b", "a\\b", "..", "."])
    def test_invalid_names_rejected(self, mutations, alice, name):
        with pytest.raises(ValidationError):
            mutations.create_folder(alice.identity, None, name)

    def test_depth_four_allowed_depth_five_rejected(self, db, mutations, alice):
        parent = alice.root_id
        for level in range(1, 5):
            parent = _folder(mutations, alice, parent, f"Level{level}")
        assert PathService(db).depth(parent) == 4

        with pytest.raises(DepthLimitExceededError):
            mutations.create_folder(alice.identity, parent, "Level5")
        assert db.query(Folder).filter(Folder.name == "Level5").count() == 0

    def test_stranger_cannot_see_parent(self, mutations, alice, bob):
        with pytest.raises(FolderNotFoundError):
            mutations.create_folder(bob.identity, alice.root_id, "Intruder")

    def test_reader_cannot_create(self, db, mutations, alice, bob):
        docs = _folder(mutations, alice, None, "Docs")
        PropagationService(db).grant(alice.identity, docs, bob.user_id, PermissionLevel.READ)
        with pytest.raises(PermissionDeniedError):
            mutations.create_folder(bob.identity, docs, "Mine")

    def test_writer_creates_folder_owned_by_self(self, db, mutations, alice, bob):
        docs = _folder(mutations, alice, None, "Docs")
        PropagationService(db).grant(alice.identity, docs, bob.user_id, PermissionLevel.WRITE)
        folder = mutations.create_folder(bob.identity, docs, "From Bob").folders[0]
        assert folder.owner_id == bob.user_id
        assert PermissionService(db).check(alice.identity, folder.id, TargetType.FOLDER, PermissionLevel.WRITE)


class TestRootProtection:

    def test_exactly_one_root_per_user(self, db, alice):
        roots = db.query(Folder).filter(Folder.owner_id == alice.user_id, Folder.parent_id.is_(None)).all()
        assert [r.id for r in roots] == [alice.root_id]

    def test_rename_root_rejected(self, mutations, alice):
        with pytest.raises(RootFolderProtectedError):
            mutations.rename_folder(alice.identity, alice.root_id, "Renamed")

    def test_move_root_rejected(self, mutations, alice):
        target = _folder(mutations, alice, None, "Target")
        with pytest.raises(RootFolderProtectedError):
            mutations.move_folder(alice.identity, alice.root_id, target)

    def test_delete_root_rejected(self, db, mutations, alice):
        with pytest.raises(RootFolderProtectedError):
            mutations.delete_folders(alice.identity, [alice.root_id])
        assert db.get(Folder, alice.root_id) is not None


class TestRenameFolder:

    def test_rename(self, mutations, alice):
        docs = _folder(mutations, alice, None, "Docs")
        folder = mutations.rename_folder(alice.identity, docs, "Papers").folders[0]
        assert folder.name == "Papers"

    def test_rename_to_sibling_name_conflicts(self, mutations, alice):
        _folder(mutations, alice, None, "Docs")
        other = _folder(mutations, alice, None, "Other")
        with pytest.raises(NameConflictError):
            mutations.rename_folder(alice.identity, other, "Docs")

    def test_rename_to_same_name_is_noop(self, mutations, alice):
        docs = _folder(mutations, alice, None, "Docs")
        assert mutations.rename_folder(alice.identity, docs, "Docs").folders[0].name == "Docs"


class TestMoveFolder:

    def test_move_relocates_directory(self, db, mutations, store, alice):
        a = _folder(mutations, alice, None, "A")
        b = _folder(mutations, alice, None, "B")
        child = _folder(mutations, alice, a, "Child")
        paths = PathService(db)
        old_address = paths.storage_address(child)

        outcome = mutations.move_folder(alice.identity, child, b)

        assert not outcome.degraded
        assert outcome.folders[0].parent_id == b
        new_address = paths.storage_address(child)
        assert not store.exists(old_address)
        assert store.exists(new_address)
        assert paths.display_path(child) == "Alice Main Folder/B/Child"

    def test_move_carries_descendants(self, db, mutations, store, alice):
        a = _folder(mutations, alice, None, "A")
        b = _folder(mutations, alice, None, "B")
        child = _folder(mutations, alice, a, "Child")
        grandchild = _folder(mutations, alice, child, "Grandchild")
        mutations.create_file(alice.identity, grandchild, "f.txt", "data")

        mutations.move_folder(alice.identity, child, b)

        paths = PathService(db)
        assert paths.display_path(grandchild) == "Alice Main Folder/B/Child/Grandchild"
        assert store.exists(paths.storage_address(grandchild))
        stored = db.query(File).filter(File.name == "f.txt").one()
        assert store.exists(paths.file_storage_address(stored))

    def test_move_into_itself_is_cycle(self, db, mutations, alice):
        a = _folder(mutations, alice, None, "A")
        with pytest.raises(CycleDetectedError):
            mutations.move_folder(alice.identity, a, a)

    def test_move_into_descendant_is_cycle_and_tree_unchanged(self, db, mutations, alice):
        a = _folder(mutations, alice, None, "A")
        b = _folder(mutations, alice, a, "B")
        c = _folder(mutations, alice, b, "C")

        with pytest.raises(CycleDetectedError):
            mutations.move_folder(alice.identity, a, c)

        db.expire_all()
        assert db.get(Folder, a).parent_id == alice.root_id
        assert db.get(Folder, b).parent_id == a
        assert db.get(Folder, c).parent_id == b

    def test_move_respects_depth_of_deepest_descendant(self, mutations, alice):
        deep = alice.root_id
        for level in range(1, 4):
            deep = _folder(mutations, alice, deep, f"Deep{level}")
        subtree = _folder(mutations, alice, None, "Subtree")
        _folder(mutations, alice, subtree, "Inner")

        # Subtree would land at depth 4 and Inner at depth 5.
        with pytest.raises(DepthLimitExceededError):
            mutations.move_folder(alice.identity, subtree, deep)

    def test_move_name_conflict_at_destination(self, mutations, alice):
        a = _folder(mutations, alice, None, "A")
        b = _folder(mutations, alice, None, "B")
        _folder(mutations, alice, b, "Same")
        same = _folder(mutations, alice, a, "Same")
        with pytest.raises(NameConflictError):
            mutations.move_folder(alice.identity, same, b)

    def test_move_to_current_parent_is_noop(self, mutations, alice):
        a = _folder(mutations, alice, None, "A")
        outcome = mutations.move_folder(alice.identity, a, alice.root_id)
        assert outcome.folders[0].parent_id == alice.root_id

    def test_cannot_move_into_invisible_folder(self, mutations, alice, bob):
        a = _folder(mutations, alice, None, "A")
        with pytest.raises(FolderNotFoundError):
            mutations.move_folder(alice.identity, a, bob.root_id)


class TestDeleteFolders:

    def test_delete_removes_subtree_grants_favorites_and_storage(self, db, mutations, store, alice, bob):
        docs = _folder(mutations, alice, None, "Docs")
        inner = _folder(mutations, alice, docs, "Inner")
        stored = mutations.create_file(alice.identity, inner, "a.txt", "abc").files[0]
        file_id = stored.id
        PropagationService(db).grant(alice.identity, docs, bob.user_id, PermissionLevel.READ)
        FavoriteService(db).mark(bob.identity, inner, TargetType.FOLDER)
        address = PathService(db).storage_address(docs)

        outcome = mutations.delete_folders(alice.identity, [docs])

        assert set(outcome.deleted_ids) == {docs, inner, file_id}
        assert db.query(Folder).filter(Folder.id.in_([docs, inner])).count() == 0
        assert db.query(File).filter(File.id == file_id).count() == 0
        assert db.query(PermissionGrant).count() == 0
        assert db.query(FavoriteMark).count() == 0
        assert not store.exists(address)

        with pytest.raises(FolderNotFoundError):
            PermissionService(db).check(alice.identity, inner, TargetType.FOLDER, PermissionLevel.READ)

    def test_delete_reduces_ancestor_counters(self, db, mutations, alice):
        docs = _folder(mutations, alice, None, "Docs")
        inner = _folder(mutations, alice, docs, "Inner")
        mutations.create_file(alice.identity, docs, "keep.txt", "12345")
        mutations.create_file(alice.identity, inner, "drop.txt", "123")

        mutations.delete_folders(alice.identity, [inner])

        db.expire_all()
        assert db.get(Folder, docs).size_bytes == 5
        assert db.get(Folder, alice.root_id).size_bytes == 5

    def test_batch_with_missing_id_removes_nothing(self, db, mutations, alice):
        docs = _folder(mutations, alice, None, "Docs")
        with pytest.raises(FolderNotFoundError):
            mutations.delete_folders(alice.identity, [docs, "missing-id"])
        assert db.get(Folder, docs) is not None

    def test_batch_with_root_removes_nothing(self, db, mutations, alice):
        docs = _folder(mutations, alice, None, "Docs")
        with pytest.raises(RootFolderProtectedError):
            mutations.delete_folders(alice.identity, [docs, alice.root_id])
        assert db.get(Folder, docs) is not None

    def test_batch_with_unwritable_folder_removes_nothing(self, db, mutations, alice, bob):
        mine = _folder(mutations, alice, None, "Mine")
        theirs = _folder(mutations, bob, None, "Theirs")
        PropagationService(db).grant(bob.identity, theirs, alice.user_id, PermissionLevel.READ)
        with pytest.raises(PermissionDeniedError):
            mutations.delete_folders(alice.identity, [mine, theirs])
        assert db.get(Folder, mine) is not None

    def test_nested_ids_in_one_batch(self, db, mutations, alice):
        a = _folder(mutations, alice, None, "A")
        b = _folder(mutations, alice, a, "B")
        outcome = mutations.delete_folders(alice.identity, [b, a])
        assert set(outcome.deleted_ids) == {a, b}
        assert db.query(Folder).filter(Folder.id.in_([a, b])).count() == 0

    def test_empty_batch_rejected(self, mutations, alice):
        with pytest.raises(ValidationError):
            mutations.delete_folders(alice.identity, [])


class TestListChildren:

    def test_folders_first_then_files_paginated(self, mutations, alice):
        for name in ("A", "B", "C"):
            _folder(mutations, alice, None, name)
        mutations.create_file(alice.identity, None, "x.txt", "x")
        mutations.create_file(alice.identity, None, "y.txt", "y")

        page1 = mutations.list_children(alice.identity, None, page=1, page_size=2)
        page2 = mutations.list_children(alice.identity, None, page=2, page_size=2)
        page3 = mutations.list_children(alice.identity, None, page=3, page_size=2)

        assert [f.name for f in page1.subfolders] == ["A", "B"] and page1.files == []
        assert [f.name for f in page2.subfolders] == ["C"]
        assert [f.name for f in page2.files] == ["x.txt"]
        assert page3.subfolders == [] and [f.name for f in page3.files] == ["y.txt"]
        assert page1.total == 5
        assert page1.has_more and page2.has_more and not page3.has_more

    def test_listing_reports_levels(self, db, mutations, alice, bob):
        docs = _folder(mutations, alice, None, "Docs")
        sub = _folder(mutations, alice, docs, "Sub")
        PropagationService(db).grant(alice.identity, docs, bob.user_id, PermissionLevel.READ)

        listing = mutations.list_children(bob.identity, docs)
        assert listing.level == PermissionLevel.READ
        assert listing.levels[sub] == PermissionLevel.READ
        assert listing.display_path == "Alice Main Folder/Docs"

    def test_stranger_cannot_list(self, mutations, alice, bob):
        with pytest.raises(FolderNotFoundError):
            mutations.list_children(bob.identity, alice.root_id)

    def test_invalid_page(self, mutations, alice):
        with pytest.raises(ValidationError):
            mutations.list_children(alice.identity, None, page=0)


class TestSearch:

    def test_own_folders_and_files_match_case_insensitively(self, mutations, alice):
        _folder(mutations, alice, None, "Reports")
        _folder(mutations, alice, None, "Old reports")
        _folder(mutations, alice, None, "Photos")
        mutations.create_file(alice.identity, None, "REPORT.txt", "x")

        results = mutations.search(alice.identity, "report")

        assert [f.name for f in results.own_folders.items] == ["Old reports", "Reports"]
        assert [f.name for f in results.own_files.items] == ["REPORT.txt"]
        assert results.shared_folders.items == [] and results.shared_files.items == []

    def test_shared_nodes_are_found_by_grantee(self, db, mutations, alice, bob):
        docs = _folder(mutations, alice, None, "Docs")
        _folder(mutations, alice, docs, "Report Q1")
        mutations.create_file(alice.identity, docs, "report.pdf", "x")
        _folder(mutations, alice, None, "Report private")
        PropagationService(db).grant(alice.identity, docs, bob.user_id, PermissionLevel.READ)

        results = mutations.search(bob.identity, "report")

        assert results.own_folders.total == 0
        assert [f.name for f in results.shared_folders.items] == ["Report Q1"]
        assert [f.name for f in results.shared_files.items] == ["report.pdf"]

    def test_wildcards_are_literal(self, mutations, alice):
        _folder(mutations, alice, None, "100%")
        _folder(mutations, alice, None, "1000")
        _folder(mutations, alice, None, "a_b")
        _folder(mutations, alice, None, "axb")

        assert [f.name for f in mutations.search(alice.identity, "%").own_folders.items] == ["100%"]
        assert [f.name for f in mutations.search(alice.identity, "_").own_folders.items] == ["a_b"]

    def test_folder_and_file_results_page_independently(self, mutations, alice):
        for name in ("Plan A", "Plan B", "Plan C"):
            _folder(mutations, alice, None, name)
        mutations.create_file(alice.identity, None, "plan.txt", "x")

        results = mutations.search(alice.identity, "plan", folder_page=2, file_page=1, per_page=2)

        assert [f.name for f in results.own_folders.items] == ["Plan C"]
        assert results.own_folders.total == 3
        assert results.own_folders.last_page == 2
        assert [f.name for f in results.own_files.items] == ["plan.txt"]

    def test_restricted_admin_sees_only_own_results(self, db, mutations, alice, restricted_admin):
        docs = _folder(mutations, alice, None, "Shared docs")
        PropagationService(db).grant(alice.identity, docs, restricted_admin.user_id, PermissionLevel.READ)
        _folder(mutations, restricted_admin, None, "My docs")

        results = mutations.search(restricted_admin.identity, "docs")

        assert [f.name for f in results.own_folders.items] == ["My docs"]
        assert results.shared_folders.total == 0

    @pytest.mark.parametrize("term", ["", "   ", None, "x" * 256])
    def test_invalid_term(self, mutations, alice, term):
        with pytest.raises(ValidationError):
            mutations.search(alice.identity, term)

    def test_invalid_page(self, mutations, alice):
        with pytest.raises(ValidationError):
            mutations.search(alice.identity, "docs", file_page=0)
