from __future__ import annotations

from datetime import date, datetime

from flask import current_app

from kycdesk.extensions import db
from kycdesk.models import KycDocument
from kycdesk.services.kyc import create_audit_log


def _today() -> date:
    return datetime.utcnow().date()


def run_document_expiry(*, today: date | None = None, limit: int = 500) -> dict:
    """Mark pending/verified documents whose expiry date has passed as expired.

    Each document is committed on its own together with its audit entry, so a
    failure on one row does not hold back the rest.
    """
    today = today or _today()
    processed = 0
    expired = 0
    errors = 0

    rows = (
        KycDocument.query
        .filter(KycDocument.status.in_(("pending", "verified")))
        .filter(KycDocument.expiry_date.isnot(None))
        .filter(KycDocument.expiry_date < today)
        .order_by(KycDocument.expiry_date.asc(), KycDocument.id.asc())
        .limit(int(limit))
        .all()
    )

    for doc in rows:
        processed += 1
        doc_id = doc.id
        old_status = doc.status
        try:
            doc.status = "expired"
            doc.updated_at = datetime.utcnow()
            create_audit_log(
                client_id=doc.client_id,
                company_id=doc.company_id,
                action="document_expired",
                action_type="update",
                entity_type="document",
                entity_id=doc.id,
                old_value=old_status,
                new_value="expired",
                description=f"Document {doc.document_name} expired on {doc.expiry_date.isoformat()}",
                performed_by="system",
            )
            db.session.commit()
            expired += 1
        except Exception:
            db.session.rollback()
            errors += 1
            current_app.logger.exception("[KYC] Failed to expire document %s", doc_id)

    current_app.logger.info(
        "[KYC] Document expiry run: processed=%s expired=%s errors=%s", processed, expired, errors
    )
    return {"ok": True, "processed": processed, "expired": expired, "errors": errors}
