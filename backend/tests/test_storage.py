"""Tests for the filesystem object store."""

import pytest

from sharetree.exceptions import StorageIOError, ValidationError


class TestAddressing:

    @pytest.mark.parametrize("key", ["../escape", "users/../../etc/passwd", "", "   ", "/"])
    def test_unsafe_addresses_rejected(self, store, key):
        with pytest.raises(ValidationError):
            store.put(key, b"x")

    def test_leading_slash_is_relative(self, store):
        store.put("/users/a/file", b"x")
        assert store.exists("users/a/file")


class TestObjects:

    def test_put_exists_size_delete(self, store):
        store.put("users/a/obj", b"hello")
        assert store.exists("users/a/obj")
        assert store.size("users/a/obj") == 5

        store.delete("users/a/obj")
        assert not store.exists("users/a/obj")

    def test_delete_missing_is_noop(self, store):
        store.delete("users/nothing")

    def test_size_of_missing_object(self, store):
        with pytest.raises(StorageIOError):
            store.size("users/nothing")

    def test_mime_type_from_name(self, store):
        assert store.mime_type("users/a/report.pdf") == "application/pdf"
        assert store.mime_type("users/a/blob") == "application/octet-stream"


class TestDirectories:

    def test_make_and_delete_directory(self, store):
        store.make_directory("users/a/b")
        store.put("users/a/b/obj", b"x")
        assert store.exists("users/a/b")

        store.delete_directory("users/a")
        assert not store.exists("users/a/b/obj")
        assert not store.exists("users/a")

    def test_delete_missing_directory_is_noop(self, store):
        store.delete_directory("users/never")

    def test_move_directory(self, store):
        store.make_directory("users/src")
        store.put("users/src/obj", b"x")

        store.move("users/src", "users/dst/nested")

        assert not store.exists("users/src")
        assert store.exists("users/dst/nested/obj")

    def test_move_missing_source(self, store):
        with pytest.raises(StorageIOError):
            store.move("users/missing", "users/dst")

    def test_move_onto_existing_target(self, store):
        store.make_directory("users/src")
        store.make_directory("users/dst")
        with pytest.raises(StorageIOError):
            store.move("users/src", "users/dst")
