"""Tests for drive listing, folders and the upload/download flow."""

from tests.conftest import create_doc, create_folder, upload_file


class TestListing:

    def test_groups_items_by_kind(self, client, auth_headers):
        folder = create_folder(client, auth_headers, "F")
        doc = create_doc(client, auth_headers, "D")
        uploaded = upload_file(client, auth_headers, "a.txt")
        create_doc(client, auth_headers, "nested", folder_id=folder["id"])

        resp = client.get("/drive/list", headers=auth_headers)
        assert resp.status_code == 200
        listing = resp.json()
        assert [f["id"] for f in listing["folders"]] == [folder["id"]]
        assert [d["id"] for d in listing["docs"]] == [doc["id"]]
        assert [f["id"] for f in listing["files"]] == [uploaded["id"]]

    def test_files_carry_download_url(self, client, auth_headers):
        uploaded = upload_file(client, auth_headers, "a.txt")
        listing = client.get("/drive/list", headers=auth_headers).json()
        url = listing["files"][0]["url"]
        assert uploaded["key"] in url
        assert "method=GET" in url

    def test_presign_failure_leaves_url_null(self, client, storage, auth_headers):
        good = upload_file(client, auth_headers, "good.txt")
        bad = upload_file(client, auth_headers, "bad.txt")
        storage.fail_presign.add(bad["key"])

        resp = client.get("/drive/list", headers=auth_headers)
        assert resp.status_code == 200
        urls = {f["id"]: f["url"] for f in resp.json()["files"]}
        assert urls[bad["id"]] is None
        assert urls[good["id"]] is not None

    def test_unknown_folder_is_404(self, client, auth_headers):
        resp = client.get("/drive/list", params={"folderId": "missing"}, headers=auth_headers)
        assert resp.status_code == 404
        assert resp.json()["error"] == "FOLDER_NOT_FOUND"


class TestFolders:

    def test_create_nested_folder(self, client, auth_headers):
        parent = create_folder(client, auth_headers, "parent")
        child = create_folder(client, auth_headers, "child", parent_id=parent["id"])
        assert child["parentId"] == parent["id"]
        assert child["sortOrder"] == 1

    def test_rename_folder(self, client, auth_headers):
        folder = create_folder(client, auth_headers, "old")
        resp = client.put(f"/drive/folder/{folder['id']}", json={"name": "  new  "}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["name"] == "new"

    def test_blank_name_rejected(self, client, auth_headers):
        resp = client.post("/drive/folders", json={"name": "   "}, headers=auth_headers)
        assert resp.status_code == 422

    def test_snake_case_accepted(self, client, auth_headers):
        parent = create_folder(client, auth_headers, "parent")
        resp = client.post("/drive/folders", json={"name": "child", "parent_id": parent["id"]}, headers=auth_headers)
        assert resp.status_code == 201
        assert resp.json()["parentId"] == parent["id"]


class TestUploadFlow:

    def test_init_returns_presigned_put_and_key(self, client, auth_headers):
        resp = client.post(
            "/drive/upload/init",
            json={"name": "My Report (final).pdf", "size": 10, "mimeType": "application/pdf"},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        me = client.get("/auth/me", headers=auth_headers).json()
        assert body["file"]["key"].startswith(f"{me['id']}/")
        assert body["file"]["key"].endswith("-My_Report_final_.pdf")
        assert "method=PUT" in body["uploadUrl"]
        assert body["file"]["sortOrder"] == 1

    def test_upload_stores_bytes_and_size(self, client, storage, auth_headers):
        uploaded = upload_file(client, auth_headers, "a.txt", data=b"twelve bytes")
        assert uploaded["size"] == 12
        assert storage.objects[uploaded["key"]] == b"twelve bytes"

    def test_finalize_after_presigned_put(self, client, storage, auth_headers):
        init = client.post(
            "/drive/upload/init", json={"name": "direct.bin", "size": 0}, headers=auth_headers
        ).json()
        storage.objects[init["file"]["key"]] = b"12345"

        resp = client.post("/drive/upload/finalize", json={"fileId": init["file"]["id"]}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["size"] == 5

    def test_finalize_without_object_is_storage_error(self, client, auth_headers):
        init = client.post(
            "/drive/upload/init", json={"name": "never.bin", "size": 3}, headers=auth_headers
        ).json()
        resp = client.post("/drive/upload/finalize", json={"fileId": init["file"]["id"]}, headers=auth_headers)
        assert resp.status_code == 502
        assert resp.json()["error"] == "STORAGE_ERROR"

    def test_init_into_unknown_folder(self, client, auth_headers):
        resp = client.post(
            "/drive/upload/init", json={"name": "x.txt", "folderId": "missing"}, headers=auth_headers
        )
        assert resp.status_code == 404

    def test_negative_size_rejected(self, client, auth_headers):
        resp = client.post("/drive/upload/init", json={"name": "x.txt", "size": -1}, headers=auth_headers)
        assert resp.status_code == 422


class TestFileOperations:

    def test_download_streams_with_mime_type(self, client, auth_headers):
        uploaded = upload_file(client, auth_headers, "page.html", data=b"<p>hi</p>", mime_type="text/html")
        resp = client.get(f"/drive/file/{uploaded['id']}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.content == b"<p>hi</p>"
        assert resp.headers["content-type"].startswith("text/html")

    def test_rename_file(self, client, auth_headers):
        uploaded = upload_file(client, auth_headers, "a.txt")
        resp = client.put(f"/drive/file/{uploaded['id']}", json={"name": "b.txt"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["name"] == "b.txt"
        assert resp.json()["key"] == uploaded["key"]

    def test_rename_to_empty_rejected(self, client, auth_headers):
        uploaded = upload_file(client, auth_headers, "a.txt")
        resp = client.put(f"/drive/file/{uploaded['id']}", json={"name": ""}, headers=auth_headers)
        assert resp.status_code == 422


class TestEmptyFolderIdMeansRoot:

    def test_list_with_empty_query(self, client, auth_headers):
        doc = create_doc(client, auth_headers, "root doc")
        resp = client.get("/drive/list?folderId=", headers=auth_headers)
        assert resp.status_code == 200
        assert [d["id"] for d in resp.json()["docs"]] == [doc["id"]]

        docs = client.get("/docs?folderId=", headers=auth_headers)
        assert docs.status_code == 200
        assert [d["id"] for d in docs.json()] == [doc["id"]]

    def test_create_with_empty_folder(self, client, auth_headers):
        doc = client.post("/docs", json={"title": "x", "folderId": ""}, headers=auth_headers)
        assert doc.status_code == 201
        assert doc.json()["folderId"] is None

        folder = client.post("/drive/folders", json={"name": "f", "parentId": ""}, headers=auth_headers)
        assert folder.status_code == 201
        assert folder.json()["parentId"] is None

        init = client.post("/drive/upload/init", json={"name": "a.txt", "folderId": ""}, headers=auth_headers)
        assert init.status_code == 201
        assert init.json()["file"]["folderId"] is None

    def test_move_with_empty_folder(self, client, auth_headers):
        folder = create_folder(client, auth_headers, "F")
        doc = create_doc(client, auth_headers, "D", folder_id=folder["id"])
        resp = client.post(
            "/drive/item/move",
            json={"itemType": "doc", "itemId": doc["id"], "folderId": ""},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["folderId"] is None

    def test_reorder_with_empty_folder(self, client, auth_headers):
        a = create_doc(client, auth_headers, "A")
        b = create_doc(client, auth_headers, "B")
        resp = client.post(
            "/drive/item/reorder",
            json={"itemType": "doc", "folderId": "", "orderedIds": [b["id"], a["id"]]},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert [(d["id"], d["sortOrder"]) for d in resp.json()] == [(b["id"], 1), (a["id"], 2)]
