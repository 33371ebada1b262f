"""Tests for FastAPI endpoints."""

import csv
import io
import re
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.ni43101.services.ai.exceptions import (
    DocumentTooLargeError,
    ExtractionTimeoutError,
    RateLimitedError,
    ServiceOverloadedError,
)
from app.ni43101.services.repository import ExtractionRepository

USER_A = "11111111-1111-1111-1111-111111111111"


def _upload(client: TestClient, headers: dict, pdf_bytes: bytes, filename: str = "report.pdf"):
    response = client.post(
        "/files",
        files={"file": (filename, pdf_bytes, "application/pdf")},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _extract(client: TestClient, headers: dict, stored: dict, filename: str = "report.pdf"):
    return client.post(
        "/extract",
        json={"path": stored["path"], "filename": filename},
        headers=headers,
    )


@pytest.fixture
def stored(client: TestClient, auth_headers: dict, sample_pdf_bytes: bytes) -> dict:
    return _upload(client, auth_headers, sample_pdf_bytes)


@pytest.fixture
def extraction(client: TestClient, auth_headers: dict, stored: dict) -> dict:
    response = _extract(client, auth_headers, stored)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client: TestClient):
        """Test root endpoint returns health status."""
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_health_endpoint(self, client: TestClient):
        """Test /health endpoint returns health status."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuthentication:
    """Protected endpoints require a valid bearer token."""

    def test_missing_token(self, client: TestClient):
        response = client.get("/extractions")
        assert response.status_code == 401

    def test_garbage_token(self, client: TestClient):
        response = client.get("/extractions", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_wrong_secret(self, client: TestClient, token_headers):
        headers = token_headers(USER_A, secret="another-secret-that-is-long-enough!!")
        response = client.get("/extractions", headers=headers)
        assert response.status_code == 401

    @pytest.mark.parametrize("subject", ["a/b", ".."])
    def test_subject_unusable_as_folder(self, client: TestClient, token_headers, subject: str):
        response = client.get("/extractions", headers=token_headers(subject))
        assert response.status_code == 401

    def test_valid_token(self, client: TestClient, auth_headers: dict):
        response = client.get("/extractions", headers=auth_headers)
        assert response.status_code == 200


class TestUploadEndpoint:
    """Tests for POST /files."""

    def test_rejects_non_pdf(self, client: TestClient, auth_headers: dict):
        response = client.post(
            "/files",
            files={"file": ("test.txt", b"not a pdf", "text/plain")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "PDF" in response.json()["detail"]

    def test_rejects_pdf_name_with_wrong_content_type(self, client: TestClient, auth_headers: dict):
        response = client.post(
            "/files",
            files={"file": ("test.pdf", b"%PDF-1.4", "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_rejects_empty_file(self, client: TestClient, auth_headers: dict):
        response = client.post(
            "/files",
            files={"file": ("test.pdf", b"", "application/pdf")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "Empty" in response.json()["detail"]

    def test_rejects_oversized_file(self, client: TestClient, auth_headers: dict):
        big = b"%PDF-1.4\n" + b"0" * (1024 * 1024)
        response = client.post(
            "/files",
            files={"file": ("big.pdf", big, "application/pdf")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "too large" in response.json()["detail"]

    def test_rejects_missing_pdf_header(
        self, client: TestClient, auth_headers: dict, invalid_file_bytes: bytes
    ):
        response = client.post(
            "/files",
            files={"file": ("test.pdf", invalid_file_bytes, "application/pdf")},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_stores_under_owner_prefix(self, stored: dict, sample_pdf_bytes: bytes):
        assert re.fullmatch(rf"{USER_A}/\d{{13}}-[0-9a-f]{{8}}\.pdf", stored["path"])
        assert stored["url"] == f"/files/{stored['path']}"
        assert stored["filename"] == "report.pdf"
        assert stored["size_bytes"] == len(sample_pdf_bytes)


class TestFileDownload:
    """Tests for GET /files/{path}."""

    def test_owner_can_read(
        self, client: TestClient, auth_headers: dict, stored: dict, sample_pdf_bytes: bytes
    ):
        response = client.get(stored["url"], headers=auth_headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content == sample_pdf_bytes

    def test_other_user_denied(self, client: TestClient, other_auth_headers: dict, stored: dict):
        response = client.get(stored["url"], headers=other_auth_headers)
        assert response.status_code == 403

    def test_missing_file(self, client: TestClient, auth_headers: dict):
        response = client.get(f"/files/{USER_A}/0-missing.pdf", headers=auth_headers)
        assert response.status_code == 404


class TestExtractEndpoint:
    """Tests for POST /extract."""

    def test_extract_stores_record(self, extraction: dict, stored: dict):
        assert extraction["user_id"] == USER_A
        assert extraction["pdf_filename"] == "report.pdf"
        assert extraction["pdf_url"] == stored["url"]
        assert extraction["project_name"] == "Mock Lake Project"
        assert extraction["ind_inf_ratio"] == 2.5
        assert extraction["resource_confidence"] == "high"
        assert extraction["status"] == "INVESTIGATE"
        assert extraction["notes"] is None
        assert extraction["id"]

    def test_cannot_extract_another_users_file(
        self, client: TestClient, other_auth_headers: dict, stored: dict
    ):
        response = _extract(client, other_auth_headers, stored)
        assert response.status_code == 403

    def test_unknown_file(self, client: TestClient, auth_headers: dict):
        response = _extract(client, auth_headers, {"path": f"{USER_A}/0-nothing.pdf"})
        assert response.status_code == 404

    def test_fallback_to_text(
        self, client: TestClient, auth_headers: dict, stored: dict, fake_ai_client
    ):
        fake_ai_client.document_error = DocumentTooLargeError()

        response = _extract(client, auth_headers, stored)

        assert response.status_code == 201, response.text
        assert len(fake_ai_client.text_calls) == 1
        assert "Indicated resource 25 Mt" in fake_ai_client.text_calls[0]["prompt"]

    @pytest.mark.parametrize(
        "error, status_code, message",
        [
            (RateLimitedError(), 429, "rate limit"),
            (ServiceOverloadedError(), 503, "overloaded"),
            (ExtractionTimeoutError(), 504, "timed out"),
        ],
    )
    def test_provider_errors_mapped(
        self,
        client: TestClient,
        auth_headers: dict,
        stored: dict,
        fake_ai_client,
        error,
        status_code,
        message,
    ):
        fake_ai_client.document_error = error

        response = _extract(client, auth_headers, stored)

        assert response.status_code == status_code
        assert message in response.json()["detail"]
        assert fake_ai_client.text_calls == []

    def test_too_large_after_fallback(
        self, client: TestClient, auth_headers: dict, stored: dict, fake_ai_client
    ):
        fake_ai_client.document_error = DocumentTooLargeError()
        fake_ai_client.text_error = DocumentTooLargeError()

        response = _extract(client, auth_headers, stored)

        assert response.status_code == 413
        assert "too large" in response.json()["detail"]

    @pytest.mark.parametrize("reply", ["no JSON here", '{"metadata": {}}'])
    def test_bad_reply_is_internal_error(
        self, client: TestClient, auth_headers: dict, stored: dict, fake_ai_client, reply
    ):
        fake_ai_client.document_reply = reply

        response = _extract(client, auth_headers, stored)

        assert response.status_code == 500
        assert response.json()["detail"] == "Invalid extraction response from AI"

    def test_failed_extraction_keeps_file_and_stores_nothing(
        self, client: TestClient, auth_headers: dict, stored: dict, fake_ai_client
    ):
        fake_ai_client.document_error = RateLimitedError()
        _extract(client, auth_headers, stored)

        assert client.get("/extractions", headers=auth_headers).json()["total"] == 0
        assert client.get(stored["url"], headers=auth_headers).status_code == 200

    def test_database_failure_on_save(
        self, client: TestClient, auth_headers: dict, stored: dict, monkeypatch
    ):
        def failing_commit(self):
            raise OperationalError("INSERT INTO extractions", {}, Exception("database is locked"))

        monkeypatch.setattr(Session, "commit", failing_commit)

        response = _extract(client, auth_headers, stored)

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"detail": "Failed to save extraction"}

        monkeypatch.undo()
        assert client.get("/extractions", headers=auth_headers).json()["total"] == 0


class TestExtractionsEndpoints:
    """Tests for listing, detail, notes and deletion."""

    def test_list(self, client: TestClient, auth_headers: dict, extraction: dict):
        data = client.get("/extractions", headers=auth_headers).json()
        assert data["total"] == 1
        assert data["extractions"][0]["id"] == extraction["id"]

    def test_list_is_private(self, client: TestClient, other_auth_headers: dict, extraction: dict):
        data = client.get("/extractions", headers=other_auth_headers).json()
        assert data["total"] == 0

    def test_list_filters(self, client: TestClient, auth_headers: dict, extraction: dict):
        data = client.get("/extractions?status=PASS", headers=auth_headers).json()
        assert data["total"] == 0
        data = client.get(
            "/extractions?status=INVESTIGATE&search=mock lake&sort=project_name&direction=asc",
            headers=auth_headers,
        ).json()
        assert data["total"] == 1

    def test_list_rejects_unknown_sort(self, client: TestClient, auth_headers: dict):
        response = client.get("/extractions?sort=notes", headers=auth_headers)
        assert response.status_code == 422

    def test_filter_options(self, client: TestClient, auth_headers: dict, extraction: dict):
        data = client.get("/extractions/filters", headers=auth_headers).json()
        assert data == {"commodities": ["lithium"], "countries": ["Canada"], "stages": ["PEA"]}

    def test_get_detail(self, client: TestClient, auth_headers: dict, extraction: dict):
        response = client.get(f"/extractions/{extraction['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["issuer_name"] == "Mock Lithium Corp."

    def test_get_other_users_record(
        self, client: TestClient, other_auth_headers: dict, extraction: dict
    ):
        response = client.get(f"/extractions/{extraction['id']}", headers=other_auth_headers)
        assert response.status_code == 403

    def test_get_unknown(self, client: TestClient, auth_headers: dict):
        response = client.get("/extractions/not-a-uuid", headers=auth_headers)
        assert response.status_code == 404

    def test_update_notes(self, client: TestClient, auth_headers: dict, extraction: dict):
        response = client.patch(
            f"/extractions/{extraction['id']}",
            json={"notes": "Call IR about PFS timing"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["notes"] == "Call IR about PFS timing"
        assert response.json()["status"] == extraction["status"]

    def test_update_derived_field_rejected(
        self, client: TestClient, auth_headers: dict, extraction: dict
    ):
        response = client.patch(
            f"/extractions/{extraction['id']}",
            json={"status": "PASS"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "status" in response.json()["detail"]

    def test_update_other_users_record(
        self, client: TestClient, other_auth_headers: dict, extraction: dict
    ):
        response = client.patch(
            f"/extractions/{extraction['id']}",
            json={"notes": "hijack"},
            headers=other_auth_headers,
        )
        assert response.status_code == 403

    def test_delete(self, client: TestClient, auth_headers: dict, extraction: dict):
        response = client.delete(f"/extractions/{extraction['id']}", headers=auth_headers)
        assert response.status_code == 204
        response = client.get(f"/extractions/{extraction['id']}", headers=auth_headers)
        assert response.status_code == 404

    def test_delete_other_users_record(
        self, client: TestClient, auth_headers: dict, other_auth_headers: dict, extraction: dict
    ):
        response = client.delete(f"/extractions/{extraction['id']}", headers=other_auth_headers)
        assert response.status_code == 403
        response = client.get(f"/extractions/{extraction['id']}", headers=auth_headers)
        assert response.status_code == 200


class TestExportEndpoint:
    """Tests for GET /extractions/export.csv."""

    def test_export(self, client: TestClient, auth_headers: dict, extraction: dict):
        response = client.get("/extractions/export.csv", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        expected_name = f"elkano-extractions-{date.today().isoformat()}.csv"
        assert expected_name in response.headers["content-disposition"]

        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0][:3] == ["Date", "Project", "Issuer"]
        assert len(rows) == 2
        assert rows[1][1] == "Mock Lake Project"

    def test_export_respects_filters(self, client: TestClient, auth_headers: dict, extraction: dict):
        response = client.get("/extractions/export.csv?status=WATCH", headers=auth_headers)
        rows = list(csv.reader(io.StringIO(response.text)))
        assert len(rows) == 1


class TestDebugEndpoint:
    """Tests for GET /debug."""

    def test_requires_auth(self, client: TestClient):
        assert client.get("/debug").status_code == 401

    def test_reports_reachability(self, client: TestClient, auth_headers: dict, stored: dict):
        data = client.get("/debug", headers=auth_headers).json()
        assert data["status"] == "ok"
        assert data["user_id"] == USER_A
        assert data["bucket_exists"] is True
        assert data["files_in_folder"] == 1
        assert data["db_connected"] is True
        assert data["ai_mock_mode"] is True


class TestUnexpectedErrors:
    """Unclassified failures still answer with a JSON detail body."""

    def test_database_error(self, client: TestClient, auth_headers: dict, monkeypatch):
        def failing_list(self, filters=None):
            raise OperationalError("SELECT", {}, Exception("no such table"))

        monkeypatch.setattr(ExtractionRepository, "list", failing_list)

        response = client.get("/extractions", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"detail": "Database error"}

    def test_unhandled_exception(self, test_app, auth_headers: dict, monkeypatch):
        def broken_list(self, filters=None):
            raise RuntimeError("boom")

        monkeypatch.setattr(ExtractionRepository, "list", broken_list)

        with TestClient(test_app, raise_server_exceptions=False) as client:
            response = client.get("/extractions", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
