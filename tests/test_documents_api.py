"""Endpoint tests for /v1/documents."""

from unittest.mock import AsyncMock, patch

from genai_studio.services.youtube import TranscriptError

from test_chunker import PARAGRAPHS


def upload(client, filename, data, content_type="text/plain"):
    return client.post("/v1/documents/upload", files={"file": (filename, data, content_type)})


class TestUpload:
    def test_upload_text_document(self, client, vector_index):
        response = upload(client, "handbook.txt", "\n\n".join(PARAGRAPHS).encode())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["documentId"].startswith("doc-")
        assert data["filename"] == "handbook.txt"
        assert data["stats"]["chunkCount"] == data["stats"]["vectorCount"] >= 1
        assert data["stats"]["originalSize"] == len("\n\n".join(PARAGRAPHS).encode())
        assert vector_index.ids_for(data["documentId"])

    def test_missing_file(self, client):
        response = client.post("/v1/documents/upload")

        assert response.status_code == 400
        assert response.json()["detail"] == "No file provided"

    def test_unsupported_file(self, client):
        response = upload(client, "setup.exe", b"MZ", "application/octet-stream")

        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]

    def test_empty_file(self, client):
        response = upload(client, "blank.md", b"   ", "text/markdown")

        assert response.status_code == 400
        assert "No content" in response.json()["detail"]

    def test_vector_store_failure_is_500(self, client):
        with patch(
            "genai_studio.services.vector_store.get_pinecone_index",
            side_effect=RuntimeError("pinecone unreachable"),
        ):
            response = upload(client, "notes.txt", b"Some content worth indexing.")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to process document"


class TestYouTube:
    def test_transcript_unavailable(self, client):
        with patch(
            "genai_studio.services.ingestion.fetch_youtube_transcript",
            AsyncMock(side_effect=TranscriptError("no captions")),
        ):
            response = client.post("/v1/documents/youtube", json={"url": "https://youtu.be/dQw4w9WgXcQ"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Failed to fetch transcript. Ensure the video has captions."

    def test_manual_transcript_accepted(self, client):
        with patch(
            "genai_studio.services.youtube.fetch_transcript_via_scraping",
            AsyncMock(side_effect=TranscriptError("blocked")),
        ):
            response = client.post(
                "/v1/documents/youtube",
                json={"url": "https://youtu.be/dQw4w9WgXcQ", "manualTranscript": "hello from the transcript"},
            )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["documentId"].startswith("doc-yt-")
        assert data["title"] == "YouTube Video (dQw4w9WgXcQ)"


class TestDocumentManagement:
    def test_list_and_get(self, client):
        document_id = upload(client, "listed.txt", b"Listed document body.").json()["data"]["documentId"]

        listing = client.get("/v1/documents").json()["data"]
        assert listing["total"] == len(listing["documents"])
        assert listing["documents"][0]["documentId"] == document_id

        document = client.get(f"/v1/documents/{document_id}").json()["data"]
        assert document["status"] == "completed"
        assert document["fileType"] == "txt"

    def test_get_unknown(self, client):
        assert client.get("/v1/documents/doc-missing").status_code == 404

    def test_delete_by_path_removes_everything(self, client, vector_index):
        document_id = upload(client, "gone.txt", b"Temporary document body.").json()["data"]["documentId"]

        response = client.delete(f"/v1/documents/{document_id}")

        assert response.status_code == 200
        assert response.json()["data"]["documentId"] == document_id
        assert vector_index.ids_for(document_id) == []
        assert client.get(f"/v1/documents/{document_id}").status_code == 404

    def test_delete_by_query(self, client):
        document_id = upload(client, "query.txt", b"Deleted by query parameter.").json()["data"]["documentId"]

        response = client.delete("/v1/documents", params={"documentId": document_id})

        assert response.status_code == 200

    def test_delete_requires_id(self, client):
        assert client.delete("/v1/documents").status_code == 400

    def test_delete_unknown(self, client):
        assert client.delete("/v1/documents/doc-missing").status_code == 404
