"""HTTP-level tests for the folder, file, permission, user and favorite routes."""

from sharetree.models import Folder


def _create_folder(client, account, name, parent_id=None):
    body = {"name": name}
    if parent_id:
        body["parent_id"] = parent_id
    response = client.post("/api/folders", json=body, headers=account.headers)
    assert response.status_code == 201, response.text
    return response.json()["folder"]["id"]


class TestIdentity:

    def test_missing_header_is_401(self, client):
        response = client.get("/api/folders/children")
        assert response.status_code == 401
        assert response.json()["error"] == "AUTHENTICATION_REQUIRED"

    def test_unknown_user_is_401(self, client):
        response = client.get("/api/folders/children", headers={"X-User-Id": "ghost"})
        assert response.status_code == 401

    def test_me(self, client, alice):
        response = client.get("/api/users/me", headers=alice.headers)
        assert response.status_code == 200
        assert response.json()["display_name"] == "Alice"


class TestFolderRoutes:

    def test_create_and_list(self, client, alice):
        folder_id = _create_folder(client, alice, "Docs")

        response = client.get("/api/folders/children", headers=alice.headers)

        assert response.status_code == 200
        body = response.json()
        assert body["display_path"] == "Alice Main Folder"
        assert body["permission"] == "write"
        assert [f["id"] for f in body["folders"]] == [folder_id]
        assert body["folders"][0]["permission"] == "write"
        assert "storage_key" not in body["folders"][0]
        assert body["has_more"] is False

    def test_rename_and_path(self, client, alice):
        folder_id = _create_folder(client, alice, "Docs")
        response = client.patch(f"/api/folders/{folder_id}/rename", json={"name": "Papers"}, headers=alice.headers)
        assert response.status_code == 200
        assert response.json()["folder"]["name"] == "Papers"

        path = client.get(f"/api/folders/{folder_id}/path", headers=alice.headers).json()
        assert path == {"id": folder_id, "type": "folder", "display_path": "Alice Main Folder/Papers"}

    def test_duplicate_name_is_409(self, client, alice):
        _create_folder(client, alice, "Docs")
        response = client.post("/api/folders", json={"name": "Docs"}, headers=alice.headers)
        assert response.status_code == 409
        assert response.json()["error"] == "NAME_CONFLICT"

    def test_move_into_descendant_is_409(self, client, alice):
        parent = _create_folder(client, alice, "Parent")
        child = _create_folder(client, alice, "Child", parent)
        response = client.post(f"/api/folders/{parent}/move", json={"parent_id": child}, headers=alice.headers)
        assert response.status_code == 409
        assert response.json()["error"] == "CYCLE_DETECTED"

    def test_delete_root_is_403(self, client, alice):
        response = client.delete(f"/api/folders/{alice.root_id}", headers=alice.headers)
        assert response.status_code == 403
        assert response.json()["error"] == "ROOT_FOLDER_PROTECTED"

    def test_depth_limit_is_422(self, client, alice):
        parent = None
        for level in range(1, 5):
            parent = _create_folder(client, alice, f"L{level}", parent)
        response = client.post("/api/folders", json={"name": "L5", "parent_id": parent}, headers=alice.headers)
        assert response.status_code == 422
        assert response.json()["error"] == "DEPTH_LIMIT_EXCEEDED"

    def test_batch_delete(self, db, client, alice):
        a = _create_folder(client, alice, "A")
        b = _create_folder(client, alice, "B")
        response = client.post("/api/folders/delete", json={"folder_ids": [a, b]}, headers=alice.headers)
        assert response.status_code == 200
        assert set(response.json()["deleted_ids"]) == {a, b}
        assert db.query(Folder).filter(Folder.id.in_([a, b])).count() == 0

    def test_hidden_folder_is_404(self, client, alice, bob):
        folder_id = _create_folder(client, alice, "Private")
        response = client.get(f"/api/folders/{folder_id}/children", headers=bob.headers)
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "FOLDER_NOT_FOUND"
        assert set(body) == {"error", "message", "details"}

    def test_size(self, client, alice):
        folder_id = _create_folder(client, alice, "Docs")
        client.post("/api/files", json={"name": "a.txt", "folder_id": folder_id, "content": "abc"}, headers=alice.headers)
        body = client.get(f"/api/folders/{folder_id}/size", headers=alice.headers).json()
        assert body["total_bytes"] == 3
        assert body["total_size"] == "3 bytes"
        assert body["file_count"] == 1


class TestFileRoutes:

    def test_multipart_upload(self, client, alice):
        response = client.post(
            "/api/files/upload",
            files={"upload": ("image.png", b"\x89PNG\r\n", "image/png")},
            headers=alice.headers,
        )
        assert response.status_code == 201, response.text
        stored = response.json()["file"]
        assert stored["size_bytes"] == 6
        assert stored["mime_type"] == "image/png"
        assert stored["folder_id"] == alice.root_id

    def test_upload_with_explicit_name_and_folder(self, client, alice):
        folder_id = _create_folder(client, alice, "Docs")
        response = client.post(
            "/api/files/upload",
            files={"upload": ("scan.bin", b"abc", "application/pdf")},
            data={"name": "report.pdf", "folder_id": folder_id},
            headers=alice.headers,
        )
        assert response.status_code == 201, response.text
        stored = response.json()["file"]
        assert stored["name"] == "report.pdf"
        assert stored["folder_id"] == folder_id
        assert stored["mime_type"] == "application/pdf"

    def test_upload_requires_file_part(self, client, alice):
        response = client.post("/api/files/upload", data={"name": "x"}, headers=alice.headers)
        assert response.status_code == 422

    def test_create_rename_delete(self, client, alice):
        response = client.post("/api/files", json={"name": "a.txt", "content": "hi"}, headers=alice.headers)
        file_id = response.json()["file"]["id"]

        renamed = client.patch(f"/api/files/{file_id}/rename", json={"name": "b.txt"}, headers=alice.headers)
        assert renamed.json()["file"]["name"] == "b.txt"

        path = client.get(f"/api/files/{file_id}/path", headers=alice.headers).json()
        assert path["display_path"] == "Alice Main Folder/b.txt"

        deleted = client.delete(f"/api/files/{file_id}", headers=alice.headers)
        assert deleted.status_code == 200
        assert deleted.json()["deleted_ids"] == [file_id]
        assert client.get(f"/api/files/{file_id}/path", headers=alice.headers).status_code == 404


class TestPermissionRoutes:

    def test_grant_check_revoke(self, client, alice, bob):
        folder_id = _create_folder(client, alice, "Shared")
        url = f"/api/permissions/folders/{folder_id}"

        granted = client.post(url, json={"user_id": bob.user_id, "level": "read"}, headers=alice.headers)
        assert granted.status_code == 201
        assert granted.json()["level"] == "read"

        again = client.post(url, json={"user_id": bob.user_id, "level": "write"}, headers=alice.headers)
        assert again.status_code == 409
        assert again.json()["error"] == "GRANT_CONFLICT"

        check = client.get(
            "/api/permissions/check",
            params={"target_id": folder_id, "level": "write"},
            headers=bob.headers,
        ).json()
        assert check["allowed"] is False

        changed = client.put(url, json={"user_id": bob.user_id, "level": "write"}, headers=alice.headers)
        assert changed.status_code == 200
        assert changed.json()["level"] == "write"

        revoked = client.delete(f"{url}/{bob.user_id}", headers=alice.headers)
        assert revoked.status_code == 200
        assert revoked.json()["removed"] == 1

        second = client.delete(f"{url}/{bob.user_id}", headers=alice.headers)
        assert second.status_code == 404
        assert second.json()["error"] == "GRANT_NOT_FOUND"

    def test_invalid_level_is_422(self, client, alice, bob):
        folder_id = _create_folder(client, alice, "Shared")
        response = client.post(
            f"/api/permissions/folders/{folder_id}",
            json={"user_id": bob.user_id, "level": "admin"},
            headers=alice.headers,
        )
        assert response.status_code == 422

    def test_list_grants(self, client, alice, bob):
        folder_id = _create_folder(client, alice, "Shared")
        client.post(
            f"/api/permissions/folders/{folder_id}",
            json={"user_id": bob.user_id, "level": "read"},
            headers=alice.headers,
        )
        grants = client.get(f"/api/permissions/folders/{folder_id}", headers=alice.headers).json()
        assert [g["user_id"] for g in grants] == [bob.user_id]


    def test_shared_with_me(self, client, alice, bob):
        folder_id = _create_folder(client, alice, "Shared")
        client.post(
            f"/api/permissions/folders/{folder_id}",
            json={"user_id": bob.user_id, "level": "write"},
            headers=alice.headers,
        )

        body = client.get("/api/permissions/shared", params={"per_page": 5}, headers=bob.headers).json()

        assert [f["id"] for f in body["folders"]["items"]] == [folder_id]
        assert body["folders"]["items"][0]["permission"] == "write"
        assert body["folders"]["pagination"] == {"current_page": 1, "last_page": 1, "per_page": 5, "total": 1}
        assert body["files"]["items"] == []

    def test_shared_with_me_rejects_bad_page(self, client, bob):
        response = client.get("/api/permissions/shared", params={"folder_page": 0}, headers=bob.headers)
        assert response.status_code == 422


class TestSearchRoutes:

    def test_search_own_and_shared(self, client, alice, bob):
        folder_id = _create_folder(client, alice, "Budget")
        client.post("/api/files", json={"name": "budget.txt", "content": "1"}, headers=bob.headers)
        client.post(
            f"/api/permissions/folders/{folder_id}",
            json={"user_id": bob.user_id, "level": "read"},
            headers=alice.headers,
        )

        body = client.get("/api/search", params={"name": "budget"}, headers=bob.headers).json()

        assert [f["name"] for f in body["own_files"]["items"]] == ["budget.txt"]
        assert [f["id"] for f in body["shared_folders"]["items"]] == [folder_id]
        assert body["own_folders"]["pagination"]["total"] == 0
        assert body["shared_files"]["items"] == []

    def test_search_requires_name(self, client, alice):
        assert client.get("/api/search", headers=alice.headers).status_code == 422
        blank = client.get("/api/search", params={"name": "   "}, headers=alice.headers)
        assert blank.status_code == 400
        assert blank.json()["error"] == "VALIDATION_ERROR"

class TestUserRoutes:

    def test_create_user_requires_admin(self, client, alice):
        response = client.post("/api/users", json={"display_name": "Dana"}, headers=alice.headers)
        assert response.status_code == 403

    def test_superadmin_creates_user(self, client, superadmin):
        response = client.post(
            "/api/users",
            json={"display_name": "Dana", "user_id": "dana"},
            headers=superadmin.headers,
        )
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["user"]["user_id"] == "dana"
        assert body["root_folder"]["name"] == "Dana Main Folder"

    def test_restricted_admin_cannot_create_user(self, client, restricted_admin):
        response = client.post("/api/users", json={"display_name": "Dana"}, headers=restricted_admin.headers)
        assert response.status_code == 403

    def test_storage_usage(self, client, alice):
        client.post("/api/files", json={"name": "a.txt", "content": "12345"}, headers=alice.headers)
        body = client.get("/api/users/me/storage", headers=alice.headers).json()
        assert body["used_bytes"] == 5
        assert body["used"] == "5 bytes"
        assert body["folder_count"] == 0


class TestFavoriteRoutes:

    def test_mark_list_unmark(self, client, alice):
        folder_id = _create_folder(client, alice, "Docs")

        marked = client.post(
            "/api/favorites",
            json={"target_id": folder_id, "target_type": "folder"},
            headers=alice.headers,
        )
        assert marked.status_code == 201

        listed = client.get("/api/favorites", headers=alice.headers).json()
        assert [f["target_id"] for f in listed] == [folder_id]

        removed = client.delete(f"/api/favorites/folder/{folder_id}", headers=alice.headers)
        assert removed.status_code == 204
        assert client.get("/api/favorites", headers=alice.headers).json() == []


class TestRepairRoutes:

    def test_requires_admin(self, client, alice):
        assert client.get("/api/repairs", headers=alice.headers).status_code == 403

    def test_list_and_run(self, client, superadmin):
        assert client.get("/api/repairs", headers=superadmin.headers).json() == []
        response = client.post("/api/repairs/run", headers=superadmin.headers)
        assert response.json() == {"completed": 0, "requeued": 0, "failed": 0}

    def test_counters(self, db, client, alice, superadmin):
        folder_id = _create_folder(client, alice, "Docs")
        client.post("/api/files", json={"name": "a.txt", "folder_id": folder_id, "content": "abc"}, headers=alice.headers)
        folder = db.get(Folder, folder_id)
        folder.size_bytes = 0
        db.commit()

        body = client.post(f"/api/repairs/counters/{alice.root_id}", headers=superadmin.headers).json()

        assert body["corrected"] == [folder_id]
