"""Tests for the audit trail and the bootstrap admin seed."""

import json

import pytest

from sharetree.core import seeder
from sharetree.core.config import settings
from sharetree.exceptions import NameConflictError
from sharetree.models import PermissionLevel, User
from sharetree.services import audit_service
from sharetree.services.propagation_service import PropagationService


class TestAuditTrail:

    def test_mutations_are_audited(self, db, mutations, alice):
        folder_id = mutations.create_folder(alice.identity, None, "Docs").folders[0].id
        mutations.rename_folder(alice.identity, folder_id, "Papers")

        entries = audit_service.get_by_resource(db, "folder", folder_id)
        assert {e.action for e in entries} == {"create", "rename"}
        rename = next(e for e in entries if e.action == "rename")
        assert json.loads(rename.details) == {"from": "Docs", "to": "Papers"}

    def test_grants_are_audited_per_user(self, db, mutations, alice, bob):
        folder_id = mutations.create_folder(alice.identity, None, "Docs").folders[0].id
        PropagationService(db).grant(alice.identity, folder_id, bob.user_id, PermissionLevel.READ)

        actions = [e.action for e in audit_service.get_by_user(db, alice.user_id)]
        assert "grant" in actions

    def test_failed_operation_leaves_no_entry(self, db, mutations, alice):
        mutations.create_folder(alice.identity, None, "Docs")
        before = len(audit_service.get_recent(db))
        with pytest.raises(NameConflictError):
            mutations.create_folder(alice.identity, None, "Docs")
        assert len(audit_service.get_recent(db)) == before


class TestBootstrapAdmin:

    def test_disabled_without_id(self, db, monkeypatch):
        monkeypatch.setattr(settings, "bootstrap_admin_id", "")
        assert seeder.seed_bootstrap_admin(db) is False
        assert db.query(User).count() == 0

    def test_seeds_superadmin_once(self, db, store, monkeypatch):
        monkeypatch.setattr(settings, "bootstrap_admin_id", "boot")
        monkeypatch.setattr("sharetree.storage.get_object_store", lambda: store)

        assert seeder.seed_bootstrap_admin(db) is True
        assert seeder.seed_bootstrap_admin(db) is False

        user = db.get(User, "boot")
        assert user.role == "admin"
        assert user.is_superadmin
