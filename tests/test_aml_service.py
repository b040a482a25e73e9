"""Tests for AML screening and reviewer decisions."""

from __future__ import annotations

import pytest

from kycdesk.errors import NotFoundError, TenantAccessError, ValidationError
from kycdesk.extensions import db
from kycdesk.models import AmlScreening, Client, KycAuditLog
from kycdesk.services import aml as aml_service
from kycdesk.services import kyc as kyc_service


def _client(name: str, company_id: int = 1) -> Client:
    return kyc_service.create_client({"full_name": name}, company_id=company_id, created_by="officer@acme.test")


class TestPerformScreening:
    def test_sanctions_hit_blocks_client(self, app_ctx):
        client = _client("John Doe")
        screening = aml_service.perform_aml_screening(client.id, "sanctions", company_id=1, screened_by="officer@acme.test")

        assert screening.match_found is True
        assert screening.match_score == 95
        assert screening.decision == "blocked"
        assert screening.screening_source == "manual"
        assert screening.matched_lists == ["UN Sanctions List"]
        assert screening.decided_by is None
        assert screening.decided_at is None

        db.session.refresh(client)
        assert client.aml_status == "blocked"
        assert client.aml_match_found is True
        assert client.aml_match_details == "Exact match found in sanctions list: John Doe"
        assert client.aml_screened_by == "officer@acme.test"
        assert client.aml_screened_at is not None

    def test_no_match_clears_client(self, app_ctx):
        client = _client("Maria Lopez")
        screening = aml_service.perform_aml_screening(client.id, company_id=1)
        assert screening.screening_type == "sanctions"
        assert screening.match_found is False
        assert screening.match_score is None
        assert screening.decision == "cleared"
        assert screening.matched_lists == []
        assert db.session.get(Client, client.id).aml_status == "cleared"

    @pytest.mark.parametrize("name,screening_type,score,decision", [
        ("Jane Smith", "pep", 90, "blocked"),
        ("Jane", "pep", 55, "flagged"),
        ("John Doe Senior", "sanctions", 60, "flagged"),
        ("Jane Smith", "watchlist", 90, "blocked"),
    ])
    def test_decision_follows_score(self, app_ctx, name, screening_type, score, decision):
        client = _client(name)
        screening = aml_service.perform_aml_screening(client.id, screening_type, company_id=1)
        assert screening.match_score == score
        assert screening.decision == decision

    def test_audit_entry(self, app_ctx):
        client = _client("John Doe")
        screening = aml_service.perform_aml_screening(client.id, "sanctions", company_id=1, screened_by="officer@acme.test")
        row = KycAuditLog.query.filter_by(action="aml_screened").one()
        assert row.action_type == "screen"
        assert row.entity_type == "screening"
        assert row.entity_id == screening.id
        assert row.new_value == "blocked"
        assert row.description == "AML screening performed (sanctions): Match found"
        assert KycAuditLog.query.count() == 2

    def test_invalid_type(self, app_ctx):
        client = _client("John Doe")
        with pytest.raises(ValidationError, match="Invalid screening type"):
            aml_service.perform_aml_screening(client.id, "credit", company_id=1)
        assert AmlScreening.query.count() == 0

    def test_other_tenant(self, app_ctx):
        client = _client("John Doe", company_id=2)
        with pytest.raises(TenantAccessError):
            aml_service.perform_aml_screening(client.id, company_id=1)

    def test_audit_failure_rolls_back(self, app_ctx, monkeypatch):
        client = _client("John Doe")

        def boom(**kwargs):
            raise RuntimeError("audit store down")

        monkeypatch.setattr(aml_service, "create_audit_log", boom)
        with pytest.raises(RuntimeError):
            aml_service.perform_aml_screening(client.id, company_id=1)
        assert AmlScreening.query.count() == 0
        assert db.session.get(Client, client.id).aml_status == "pending"


class TestScreeningDecision:
    def test_override_updates_client(self, app_ctx):
        client = _client("John Doe")
        screening = aml_service.perform_aml_screening(client.id, company_id=1)

        updated = aml_service.update_screening_decision(
            screening.id, "cleared", decided_by="mlro@acme.test",
            decision_notes="Different date of birth", company_id=1,
        )
        assert updated.decision == "cleared"
        assert updated.decided_by == "mlro@acme.test"
        assert updated.decided_at is not None
        assert updated.decision_notes == "Different date of birth"
        assert db.session.get(Client, client.id).aml_status == "cleared"

        row = KycAuditLog.query.filter_by(action="aml_decision_updated").one()
        assert row.old_value == "blocked"
        assert row.new_value == "cleared"
        assert row.description == "Different date of birth"

    def test_same_decision_leaves_client_alone(self, app_ctx):
        client = _client("John Doe")
        first = aml_service.perform_aml_screening(client.id, "sanctions", company_id=1)
        aml_service.perform_aml_screening(client.id, "adverse_media", company_id=1)
        assert db.session.get(Client, client.id).aml_status == "cleared"

        aml_service.update_screening_decision(first.id, "blocked", decided_by="mlro", company_id=1)
        assert db.session.get(Client, client.id).aml_status == "cleared"
        assert KycAuditLog.query.filter_by(action="aml_decision_updated").count() == 1

    def test_invalid_decision(self, app_ctx):
        client = _client("John Doe")
        screening = aml_service.perform_aml_screening(client.id, company_id=1)
        with pytest.raises(ValidationError, match="Invalid decision"):
            aml_service.update_screening_decision(screening.id, "escalated", decided_by="x", company_id=1)

    @pytest.mark.parametrize("decision", [1, ["cleared"]])
    def test_non_text_decision_rejected(self, app_ctx, decision):
        client = _client("John Doe")
        screening = aml_service.perform_aml_screening(client.id, company_id=1)
        with pytest.raises(ValidationError):
            aml_service.update_screening_decision(screening.id, decision, decided_by="x", company_id=1)

    def test_audit_failure_rolls_back_decision(self, app_ctx, monkeypatch):
        client = _client("John Doe")
        screening = aml_service.perform_aml_screening(client.id, company_id=1)
        client_id, screening_id = client.id, screening.id

        def boom(**kwargs):
            raise RuntimeError("audit store down")

        monkeypatch.setattr(aml_service, "create_audit_log", boom)
        with pytest.raises(RuntimeError):
            aml_service.update_screening_decision(screening_id, "cleared", decided_by="mlro", company_id=1)

        db.session.expire_all()
        reloaded = db.session.get(AmlScreening, screening_id)
        assert reloaded.decision == "blocked"
        assert reloaded.decided_by is None
        assert db.session.get(Client, client_id).aml_status == "blocked"
        assert KycAuditLog.query.filter_by(action="aml_decision_updated").count() == 0

    def test_missing_and_foreign_screening(self, app_ctx):
        client = _client("John Doe")
        screening = aml_service.perform_aml_screening(client.id, company_id=1)
        with pytest.raises(NotFoundError, match="Screening not found"):
            aml_service.update_screening_decision(999, "cleared", decided_by="x", company_id=1)
        with pytest.raises(TenantAccessError, match="Unauthorized access to screening"):
            aml_service.update_screening_decision(screening.id, "cleared", decided_by="x", company_id=2)


class TestClientScreenings:
    def test_newest_first(self, app_ctx):
        client = _client("John Doe")
        first = aml_service.perform_aml_screening(client.id, "sanctions", company_id=1)
        second = aml_service.perform_aml_screening(client.id, "pep", company_id=1)
        rows = aml_service.get_client_screenings(client.id, company_id=1)
        assert [s.id for s in rows] == [second.id, first.id]

    def test_other_tenant(self, app_ctx):
        client = _client("John Doe")
        with pytest.raises(TenantAccessError):
            aml_service.get_client_screenings(client.id, company_id=2)
