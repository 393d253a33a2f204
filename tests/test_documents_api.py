"""Tests for the document endpoints, including export."""

from unittest.mock import patch

from tests.conftest import create_doc, create_folder


def _paragraph(text: str) -> dict:
    return {"type": "paragraph", "content": [{"type": "text", "text": text}]}


class TestDocumentCrud:

    def test_create_starts_with_empty_tree(self, client, auth_headers):
        doc = create_doc(client, auth_headers, "  Notes  ")
        assert doc["title"] == "Notes"
        assert doc["content"] == {"type": "doc", "content": []}
        assert doc["sortOrder"] == 1
        assert doc["folderId"] is None

    def test_update_then_fetch_returns_last_write(self, client, auth_headers):
        doc = create_doc(client, auth_headers, "Notes")
        first = {"type": "doc", "content": [_paragraph("first")]}
        second = {"type": "doc", "content": [_paragraph("second")]}

        client.put(f"/docs/{doc['id']}", json={"content": first}, headers=auth_headers)
        resp = client.put(f"/docs/{doc['id']}", json={"content": second}, headers=auth_headers)
        assert resp.status_code == 200

        fetched = client.get(f"/docs/{doc['id']}", headers=auth_headers).json()
        assert fetched["content"] == second

    def test_partial_update_keeps_other_fields(self, client, auth_headers):
        doc = create_doc(client, auth_headers, "Notes")
        content = {"type": "doc", "content": [_paragraph("body")]}
        client.put(f"/docs/{doc['id']}", json={"content": content, "settings": {"font": "serif"}}, headers=auth_headers)

        resp = client.put(f"/docs/{doc['id']}", json={"title": "Renamed"}, headers=auth_headers)
        body = resp.json()
        assert body["title"] == "Renamed"
        assert body["content"] == content
        assert body["settings"] == {"font": "serif"}

    def test_settings_can_be_cleared(self, client, auth_headers):
        doc = create_doc(client, auth_headers, "Notes")
        client.put(f"/docs/{doc['id']}", json={"settings": {"a": 1}}, headers=auth_headers)
        resp = client.put(f"/docs/{doc['id']}", json={"settings": None}, headers=auth_headers)
        assert resp.json()["settings"] is None

    def test_unknown_node_type_rejected(self, client, auth_headers):
        doc = create_doc(client, auth_headers, "Notes")
        bad = {"type": "doc", "content": [{"type": "marquee", "content": []}]}
        resp = client.put(f"/docs/{doc['id']}", json={"content": bad}, headers=auth_headers)
        assert resp.status_code == 422

    def test_empty_title_rejected(self, client, auth_headers):
        resp = client.post("/docs", json={"title": " "}, headers=auth_headers)
        assert resp.status_code == 422

    def test_list_by_folder(self, client, auth_headers):
        folder = create_folder(client, auth_headers, "F")
        inside = create_doc(client, auth_headers, "inside", folder_id=folder["id"])
        root = create_doc(client, auth_headers, "root")

        in_folder = client.get("/docs", params={"folderId": folder["id"]}, headers=auth_headers).json()
        at_root = client.get("/docs", headers=auth_headers).json()
        assert [d["id"] for d in in_folder] == [inside["id"]]
        assert [d["id"] for d in at_root] == [root["id"]]


class TestExport:

    def _doc_with_content(self, client, headers, title="Report"):
        doc = create_doc(client, headers, title)
        content = {
            "type": "doc",
            "content": [
                {"type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": "Title"}]},
                _paragraph("Body text"),
            ],
        }
        client.put(f"/docs/{doc['id']}", json={"content": content}, headers=headers)
        return doc

    def test_local_markdown_export(self, client, auth_headers):
        doc = self._doc_with_content(client, auth_headers)
        resp = client.post(f"/docs/{doc['id']}/export", json={"format": "md"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/markdown")
        assert "attachment" in resp.headers["content-disposition"]
        assert "Report.md" in resp.headers["content-disposition"]
        text = resp.content.decode("utf-8")
        assert "# Title" in text
        assert "Body text" in text

    def test_client_html_is_sanitized(self, client, auth_headers):
        doc = create_doc(client, auth_headers, "Report")
        resp = client.post(
            f"/docs/{doc['id']}/export",
            json={"format": "md", "html": "<p>Safe</p><script>alert(1)</script>"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert b"Safe" in resp.content
        assert b"<script>" not in resp.content

    def test_docx_export_is_a_zip(self, client, auth_headers):
        doc = self._doc_with_content(client, auth_headers)
        resp = client.post(f"/docs/{doc['id']}/export", json={"format": "docx"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.content[:2] == b"PK"

    def test_export_to_drive_creates_file(self, client, storage, auth_headers):
        folder = create_folder(client, auth_headers, "Exports")
        doc = self._doc_with_content(client, auth_headers)
        create_doc(client, auth_headers, "sibling", folder_id=folder["id"])

        resp = client.post(
            f"/docs/{doc['id']}/export",
            json={"format": "md", "destination": "drive", "folderId": folder["id"]},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        exported = resp.json()
        assert exported["name"] == "Report.md"
        assert exported["folderId"] == folder["id"]
        assert exported["sortOrder"] == 1
        assert exported["size"] == len(storage.objects[exported["key"]])

        listing = client.get("/drive/list", params={"folderId": folder["id"]}, headers=auth_headers).json()
        assert [f["id"] for f in listing["files"]] == [exported["id"]]

    def test_export_to_drive_defaults_to_document_folder(self, client, auth_headers):
        folder = create_folder(client, auth_headers, "Home")
        doc = create_doc(client, auth_headers, "Inside", folder_id=folder["id"])
        resp = client.post(
            f"/docs/{doc['id']}/export", json={"format": "md", "destination": "drive"}, headers=auth_headers
        )
        assert resp.status_code == 201
        assert resp.json()["folderId"] == folder["id"]

    def test_pdf_uses_converter(self, client, auth_headers):
        doc = self._doc_with_content(client, auth_headers)
        with patch("opendesk.services.export_service.docx_to_pdf", return_value=b"%PDF-1.7 fake") as convert:
            resp = client.post(f"/docs/{doc['id']}/export", json={"format": "pdf"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.content == b"%PDF-1.7 fake"
        assert resp.headers["content-type"] == "application/pdf"
        convert.assert_called_once()

    def test_unsupported_format_is_422(self, client, auth_headers):
        doc = create_doc(client, auth_headers, "Report")
        resp = client.post(f"/docs/{doc['id']}/export", json={"format": "odt"}, headers=auth_headers)
        assert resp.status_code == 422

    def test_export_foreign_document_is_404(self, client, auth_headers, other_headers):
        doc = create_doc(client, auth_headers, "Private")
        resp = client.post(f"/docs/{doc['id']}/export", json={"format": "md"}, headers=other_headers)
        assert resp.status_code == 404

    def test_export_to_drive_empty_folder_means_root(self, client, auth_headers):
        folder = create_folder(client, auth_headers, "Home")
        doc = create_doc(client, auth_headers, "Inside", folder_id=folder["id"])
        resp = client.post(
            f"/docs/{doc['id']}/export",
            json={"format": "md", "destination": "drive", "folderId": ""},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["folderId"] is None
