"""AML screening against sanctions/PEP lists and reviewer decisions."""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from kycdesk.errors import NotFoundError, TenantAccessError, ValidationError
from kycdesk.extensions import db
from kycdesk.models import AmlScreening
from kycdesk.models.aml_screening import SCREENING_TYPES
from kycdesk.models.client import AML_STATUSES
from kycdesk.services.kyc import create_audit_log, load_client, text_value
from kycdesk.utils.risk import screening_decision
from kycdesk.utils.watchlists import screen_name


def _now() -> datetime:
    return datetime.utcnow()


def perform_aml_screening(
    client_id: int,
    screening_type: str = "sanctions",
    company_id: int = 1,
    screened_by: str = "system",
) -> AmlScreening:
    screening_type = (text_value(screening_type, "screening_type") or "sanctions").lower()
    if screening_type not in SCREENING_TYPES:
        raise ValidationError(f"Invalid screening type: {screening_type}")

    client = load_client(client_id, company_id)

    result = screen_name(client.full_name, screening_type)
    decision = screening_decision(result.match_found, result.match_score)

    now = _now()
    screening = AmlScreening(
        client_id=client.id,
        company_id=int(company_id),
        screening_type=screening_type,
        screening_source="manual",
        screening_date=now,
        match_found=result.match_found,
        match_score=result.match_score if result.match_found else None,
        match_details=result.match_details,
        decision=decision,
        screened_by=screened_by,
        created_at=now,
        updated_at=now,
    )
    screening.matched_lists = result.matched_lists

    try:
        db.session.add(screening)
        db.session.flush()

        client.aml_status = decision
        client.aml_screened_at = now
        client.aml_screened_by = screened_by
        client.aml_match_found = result.match_found
        client.aml_match_details = result.match_details
        client.updated_at = now

        create_audit_log(
            client_id=client.id,
            company_id=company_id,
            action="aml_screened",
            action_type="screen",
            entity_type="screening",
            entity_id=screening.id,
            new_value=decision,
            description=(
                f"AML screening performed ({screening_type}): "
                f"{'Match found' if result.match_found else 'No match'}"
            ),
            performed_by=screened_by,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[AML] Screening failed for client %s", client_id)
        raise

    current_app.logger.info(
        "[AML] Screening completed: client=%s type=%s match=%s score=%s decision=%s",
        client.id, screening_type, result.match_found, result.match_score, decision,
    )
    return screening


def load_screening(screening_id: int, company_id: int) -> AmlScreening:
    screening = db.session.get(AmlScreening, int(screening_id))
    if not screening:
        raise NotFoundError("Screening not found")
    if int(screening.company_id) != int(company_id):
        raise TenantAccessError("Unauthorized access to screening")
    return screening


def update_screening_decision(
    screening_id: int,
    decision: str,
    decided_by: str,
    decision_notes: str | None = None,
    company_id: int = 1,
) -> AmlScreening:
    decision = (text_value(decision, "decision") or "").lower()
    if decision not in AML_STATUSES:
        raise ValidationError(f"Invalid decision: {decision}")

    screening = load_screening(screening_id, company_id)
    old_decision = screening.decision
    notes = text_value(decision_notes, "decision_notes")

    now = _now()
    try:
        screening.decision = decision
        screening.decided_by = decided_by
        screening.decided_at = now
        screening.decision_notes = notes
        screening.updated_at = now

        # The client's aggregate status follows the latest decision change.
        if old_decision != decision:
            client = screening.client
            client.aml_status = decision
            client.updated_at = now

        create_audit_log(
            client_id=screening.client_id,
            company_id=company_id,
            action="aml_decision_updated",
            action_type="update",
            entity_type="screening",
            entity_id=screening.id,
            old_value=old_decision,
            new_value=decision,
            description=notes or f"AML decision updated to {decision}",
            performed_by=decided_by,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[AML] Decision update failed for screening %s", screening_id)
        raise

    current_app.logger.info(
        "[AML] Screening decision updated: screening=%s %s -> %s by %s",
        screening.id, old_decision, decision, decided_by,
    )
    return screening


def get_client_screenings(client_id: int, company_id: int = 1) -> list[AmlScreening]:
    load_client(client_id, company_id)
    return (
        AmlScreening.query
        .filter(AmlScreening.client_id == int(client_id))
        .filter(AmlScreening.company_id == int(company_id))
        .order_by(AmlScreening.screening_date.desc(), AmlScreening.id.desc())
        .all()
    )
