"""Integration tests for the /api/kyc blueprint using the Flask test client."""

from __future__ import annotations

from io import BytesIO

import pytest

from conftest import auth_headers, pdf_upload
from kycdesk.utils.jwt_utils import create_access_token


def _create(client, headers, **body):
    payload = {"fullName": "Amira Haddad", "nationality": "AE", "emiratesId": "784-1", "address": "Dubai"}
    payload.update(body)
    r = client.post("/api/kyc", json=payload, headers=headers)
    assert r.status_code == 201, r.get_json()
    return r.get_json()


def _upload(client, headers, client_id, **form):
    data = {"file": pdf_upload(), "documentType": "passport"}
    data.update(form)
    return client.post(
        f"/api/kyc/{client_id}/documents",
        data=data,
        headers=headers,
        content_type="multipart/form-data",
    )


class TestAccess:
    def test_health(self, client):
        r = client.get("/api/health")
        assert r.status_code == 200
        assert r.get_json()["db"] == "ok"

    def test_missing_token(self, client):
        r = client.get("/api/kyc")
        assert r.status_code == 401
        assert r.get_json() == {"message": "Unauthorized: missing or invalid token"}

    def test_garbage_token(self, client, users):
        r = client.get("/api/kyc", headers={"Authorization": "Bearer not-a-jwt"})
        assert r.status_code == 401

    def test_expired_token(self, app, client, users):
        with app.app_context():
            token = create_access_token(users["admin"]["id"], ttl_seconds=-60)
        r = client.get("/api/kyc", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401

    def test_staff_role_forbidden(self, client, users):
        r = client.get("/api/kyc", headers=auth_headers(users["staff"]))
        assert r.status_code == 403
        assert r.get_json() == {"message": "Forbidden: admin role required"}

    def test_admin_allowed(self, client, admin_headers):
        r = client.get("/api/kyc", headers=admin_headers)
        assert r.status_code == 200
        assert r.get_json() == []


class TestClients:
    def test_create_and_fetch(self, client, admin_headers):
        created = _create(client, admin_headers, pepStatus="politically_exposed_person")
        assert created["full_name"] == "Amira Haddad"
        assert created["company_id"] == 1
        assert created["risk_score"] == 30
        assert created["risk_category"] == "low"
        assert created["onboarded_by"] == "officer@acme.test"
        assert created["documents"] == []

        r = client.get(f"/api/kyc/{created['id']}", headers=admin_headers)
        assert r.status_code == 200
        assert r.get_json()["id"] == created["id"]

    def test_create_requires_name(self, client, admin_headers):
        r = client.post("/api/kyc", json={"email": "a@b.test"}, headers=admin_headers)
        assert r.status_code == 400
        assert r.get_json() == {"message": "Full name is required"}

    def test_update(self, client, admin_headers):
        created = _create(client, admin_headers)
        r = client.put(f"/api/kyc/{created['id']}", json={"address": "", "city": "Sharjah"}, headers=admin_headers)
        assert r.status_code == 200
        body = r.get_json()
        assert body["city"] == "Sharjah"
        assert body["risk_score"] == 5

    def test_numeric_full_name_is_taken_as_text(self, client, admin_headers):
        created = _create(client, admin_headers, fullName=123)
        assert created["full_name"] == "123"

    @pytest.mark.parametrize("body", [
        {"fullName": {"first": "Amira"}},
        {"fullName": "Amira Haddad", "clientType": 5},
        {"fullName": "Amira Haddad", "pepStatus": ["none"]},
    ])
    def test_non_text_fields_rejected(self, client, admin_headers, body):
        r = client.post("/api/kyc", json=body, headers=admin_headers)
        assert r.status_code == 400
        assert r.get_json()["message"].startswith("Invalid ")

    def test_list_filters(self, client, admin_headers):
        a = _create(client, admin_headers, fullName="Amira Haddad")
        b = _create(client, admin_headers, fullName="Boris Ivanov", nationality="SY")
        client.put(f"/api/kyc/{b['id']}/kyc-status", json={"status": "in_review"}, headers=admin_headers)

        r = client.get("/api/kyc?kycStatus=in_review", headers=admin_headers)
        assert [c["id"] for c in r.get_json()] == [b["id"]]
        r = client.get("/api/kyc?q=amira", headers=admin_headers)
        assert [c["id"] for c in r.get_json()] == [a["id"]]

    def test_tenant_isolation(self, client, users, admin_headers):
        created = _create(client, admin_headers)
        other = auth_headers(users["other_admin"])
        r = client.get(f"/api/kyc/{created['id']}", headers=other)
        assert r.status_code == 403
        assert r.get_json() == {"message": "Unauthorized access to client"}
        assert client.get("/api/kyc", headers=other).get_json() == []

    def test_not_found(self, client, admin_headers):
        r = client.get("/api/kyc/4242", headers=admin_headers)
        assert r.status_code == 404
        assert r.get_json() == {"message": "Client not found"}

    def test_developer_override(self, client, users, admin_headers):
        created = _create(client, auth_headers(users["other_admin"]))
        dev = auth_headers(users["developer"], **{"X-Company-Id": "2"})
        r = client.get(f"/api/kyc/{created['id']}", headers=dev)
        assert r.status_code == 200

        # Non-developers cannot switch tenant
        spoof = dict(admin_headers, **{"X-Company-Id": "2"})
        assert client.get(f"/api/kyc/{created['id']}", headers=spoof).status_code == 403

    def test_invalid_override_falls_back(self, client, users):
        dev = auth_headers(users["developer"], **{"X-Company-Id": "acme"})
        created = _create(client, dev)
        assert created["company_id"] == 1


class TestStatusAndAudit:
    def test_status_change(self, client, admin_headers):
        created = _create(client, admin_headers)
        r = client.put(
            f"/api/kyc/{created['id']}/kyc-status",
            json={"status": "approved", "notes": "EDD complete"},
            headers=admin_headers,
        )
        assert r.status_code == 200
        assert r.get_json()["kyc_status"] == "approved"
        assert r.get_json()["last_reviewed_by"] == "officer@acme.test"

        log = client.get(f"/api/kyc/{created['id']}/audit-log", headers=admin_headers).get_json()
        assert [e["action"] for e in log] == ["kyc_status_changed", "client_created"]
        assert log[0]["action_type"] == "approve"
        assert log[0]["description"] == "EDD complete"
        assert log[0]["ip_address"] == "127.0.0.1"

    def test_status_required(self, client, admin_headers):
        created = _create(client, admin_headers)
        r = client.put(f"/api/kyc/{created['id']}/kyc-status", json={}, headers=admin_headers)
        assert r.status_code == 400
        assert r.get_json() == {"message": "Status is required"}

    def test_invalid_status(self, client, admin_headers):
        created = _create(client, admin_headers)
        r = client.put(f"/api/kyc/{created['id']}/kyc-status", json={"status": "done"}, headers=admin_headers)
        assert r.status_code == 400

    @pytest.mark.parametrize("status", [5, {"value": "approved"}])
    def test_non_text_status_rejected(self, client, admin_headers, status):
        created = _create(client, admin_headers)
        r = client.put(f"/api/kyc/{created['id']}/kyc-status", json={"status": status}, headers=admin_headers)
        assert r.status_code == 400

    def test_zero_limit_returns_one_entry(self, client, admin_headers):
        _create(client, admin_headers)
        _create(client, admin_headers, fullName="Second")
        log = client.get("/api/kyc/audit-log?limit=0", headers=admin_headers).get_json()
        assert len(log) == 1

    def test_tenant_audit_log_and_summary(self, client, admin_headers):
        _create(client, admin_headers)
        _create(client, admin_headers, fullName="Second")
        log = client.get("/api/kyc/audit-log?action=client_created&limit=1", headers=admin_headers).get_json()
        assert len(log) == 1

        summary = client.get("/api/kyc/summary", headers=admin_headers).get_json()
        assert summary["total_clients"] == 2
        assert summary["kyc_status"]["pending"] == 2
        assert set(summary["aml_status"]) == {"pending", "cleared", "flagged", "blocked"}


class TestDocumentsApi:
    def test_upload_verify_download(self, client, admin_headers):
        created = _create(client, admin_headers)
        r = _upload(client, admin_headers, created["id"], expiryDate="2031-05-01", documentNumber="P-99")
        assert r.status_code == 201, r.get_json()
        doc = r.get_json()
        assert doc["status"] == "pending"
        assert doc["document_type"] == "passport"
        assert doc["expiry_date"] == "2031-05-01"
        assert doc["mime_type"] == "application/pdf"

        r = client.put(
            f"/api/kyc/documents/{doc['id']}/verify",
            json={"verificationNotes": "Matches original"},
            headers=admin_headers,
        )
        assert r.status_code == 200
        assert r.get_json()["verified"] is True
        assert r.get_json()["verification_notes"] == "Matches original"

        r = client.put(f"/api/kyc/documents/{doc['id']}/verify", json={}, headers=admin_headers)
        assert r.status_code == 409

        r = client.get(f"/api/kyc/documents/{doc['id']}/download", headers=admin_headers)
        assert r.status_code == 200
        assert r.data.startswith(b"%PDF-1.4")
        assert "passport.pdf" in r.headers["Content-Disposition"]
        r.close()

        detail = client.get(f"/api/kyc/{created['id']}", headers=admin_headers).get_json()
        assert [d["id"] for d in detail["documents"]] == [doc["id"]]

    def test_reject(self, client, admin_headers):
        created = _create(client, admin_headers)
        doc = _upload(client, admin_headers, created["id"]).get_json()
        r = client.put(f"/api/kyc/documents/{doc['id']}/reject", json={}, headers=admin_headers)
        assert r.status_code == 400
        r = client.put(
            f"/api/kyc/documents/{doc['id']}/reject",
            json={"rejectionReason": "Illegible scan"},
            headers=admin_headers,
        )
        assert r.status_code == 200
        assert r.get_json()["status"] == "rejected"
        assert r.get_json()["rejection_reason"] == "Illegible scan"

    def test_missing_file(self, client, admin_headers):
        created = _create(client, admin_headers)
        r = client.post(
            f"/api/kyc/{created['id']}/documents",
            data={"documentType": "passport"},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert r.status_code == 400
        assert r.get_json() == {"message": "No file uploaded"}

    def test_disallowed_type(self, client, admin_headers):
        created = _create(client, admin_headers)
        r = client.post(
            f"/api/kyc/{created['id']}/documents",
            data={"file": (BytesIO(b"hello"), "notes.txt", "text/plain")},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert r.status_code == 400
        assert r.get_json() == {"message": "Only JPEG, PNG, and PDF files are allowed"}

    def test_too_large(self, app, client, admin_headers):
        created = _create(client, admin_headers)
        app.config["MAX_CONTENT_LENGTH"] = 1024 * 1024
        r = client.post(
            f"/api/kyc/{created['id']}/documents",
            data={"file": pdf_upload(payload=b"%PDF" + b"0" * (1024 * 1024 + 10))},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert r.status_code == 413
        assert r.get_json() == {"message": "File too large (max 1MB)"}

    def test_foreign_document(self, client, users, admin_headers):
        created = _create(client, admin_headers)
        doc = _upload(client, admin_headers, created["id"]).get_json()
        other = auth_headers(users["other_admin"])
        assert client.get(f"/api/kyc/documents/{doc['id']}/download", headers=other).status_code == 403
        assert client.put(f"/api/kyc/documents/{doc['id']}/verify", json={}, headers=other).status_code == 403


class TestScreeningApi:
    def test_screen_and_override(self, client, admin_headers):
        created = _create(client, admin_headers, fullName="John Doe")
        r = client.post(
            f"/api/kyc/{created['id']}/aml-screening",
            json={"screeningType": "sanctions"},
            headers=admin_headers,
        )
        assert r.status_code == 201
        screening = r.get_json()
        assert screening["decision"] == "blocked"
        assert screening["match_score"] == 95.0
        assert screening["matched_lists"] == ["UN Sanctions List"]

        r = client.put(
            f"/api/kyc/aml-screenings/{screening['id']}/decision",
            json={"decision": "cleared", "decisionNotes": "False positive"},
            headers=admin_headers,
        )
        assert r.status_code == 200
        assert r.get_json()["decided_by"] == "officer@acme.test"

        detail = client.get(f"/api/kyc/{created['id']}", headers=admin_headers).get_json()
        assert detail["aml_status"] == "cleared"

        rows = client.get(f"/api/kyc/{created['id']}/aml-screenings", headers=admin_headers).get_json()
        assert [s["id"] for s in rows] == [screening["id"]]

    def test_default_type_is_sanctions(self, client, admin_headers):
        created = _create(client, admin_headers)
        r = client.post(f"/api/kyc/{created['id']}/aml-screening", json={}, headers=admin_headers)
        assert r.status_code == 201
        assert r.get_json()["screening_type"] == "sanctions"
        assert r.get_json()["decision"] == "cleared"

    def test_decision_required(self, client, admin_headers):
        created = _create(client, admin_headers)
        screening = client.post(f"/api/kyc/{created['id']}/aml-screening", json={}, headers=admin_headers).get_json()
        r = client.put(f"/api/kyc/aml-screenings/{screening['id']}/decision", json={}, headers=admin_headers)
        assert r.status_code == 400
        assert r.get_json() == {"message": "Decision is required"}

    @pytest.mark.parametrize("decision", [1, ["cleared"]])
    def test_non_text_decision_rejected(self, client, admin_headers, decision):
        created = _create(client, admin_headers)
        screening = client.post(f"/api/kyc/{created['id']}/aml-screening", json={}, headers=admin_headers).get_json()
        r = client.put(
            f"/api/kyc/aml-screenings/{screening['id']}/decision",
            json={"decision": decision},
            headers=admin_headers,
        )
        assert r.status_code == 400

    @pytest.mark.parametrize("screening_type", ["credit", "PEP "])
    def test_screening_type_normalized_or_rejected(self, client, admin_headers, screening_type):
        created = _create(client, admin_headers)
        r = client.post(
            f"/api/kyc/{created['id']}/aml-screening",
            json={"screeningType": screening_type},
            headers=admin_headers,
        )
        assert r.status_code == (201 if screening_type.strip().lower() == "pep" else 400)


class TestReportApi:
    def test_pdf_report(self, client, admin_headers):
        created = _create(client, admin_headers, fullName="John Doe")
        client.post(f"/api/kyc/{created['id']}/aml-screening", json={}, headers=admin_headers)
        _upload(client, admin_headers, created["id"])

        r = client.get(f"/api/kyc/{created['id']}/report.pdf", headers=admin_headers)
        assert r.status_code == 200
        assert r.mimetype == "application/pdf"
        assert r.data.startswith(b"%PDF")
        assert f"client-{created['id']}-kyc-report.pdf" in r.headers["Content-Disposition"]
