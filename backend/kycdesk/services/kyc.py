"""Client onboarding, document management and KYC status workflow.

Every mutating function stages its change together with exactly one
``KycAuditLog`` row and commits once; any failure rolls both back.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Mapping

from flask import current_app, has_request_context, request
from sqlalchemy.orm import selectinload

from kycdesk.errors import ConflictError, NotFoundError, TenantAccessError, ValidationError
from kycdesk.extensions import db
from kycdesk.models import Client, KycAuditLog, KycDocument
from kycdesk.models.client import (
    AML_STATUSES,
    CLIENT_TYPES,
    KYC_LEVELS,
    KYC_STATUSES,
    PEP_STATUSES,
    RISK_CATEGORIES,
)
from kycdesk.models.kyc_document import DOCUMENT_TYPES
from kycdesk.utils.document_storage import allowed_upload, get_document_store
from kycdesk.utils.risk import calculate_initial_risk_score, risk_category

STRING_FIELDS = (
    "full_name", "email", "phone", "nationality",
    "company_name", "trade_license_number",
    "emirates_id", "passport_number", "passport_country", "trn",
    "address", "city", "state", "country", "postal_code",
    "notes",
)
DATE_FIELDS = ("date_of_birth", "company_registration_date", "passport_expiry")
ENUM_FIELDS = {
    "client_type": CLIENT_TYPES,
    "kyc_level": KYC_LEVELS,
    "pep_status": PEP_STATUSES,
}
RISK_INPUT_FIELDS = (
    "nationality", "emirates_id", "passport_number", "client_type",
    "trade_license_number", "address", "pep_status",
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Audit action type recorded for a KYC status change
_STATUS_ACTION_TYPES = {"approved": "approve", "rejected": "reject"}


def _now() -> datetime:
    return datetime.utcnow()


def parse_date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid date for {field}")


def text_value(value: Any, field: str) -> str | None:
    """Trimmed text of a request field, or None when blank.

    Numbers are taken as their text (phone or ID numbers often arrive as
    JSON numbers); any other non-string is a validation error.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"Invalid {field}")
    return str(value).strip() or None


def _clean_profile(data: Mapping[str, Any]) -> dict:
    """Validate and normalize the profile fields present in ``data``."""
    values: dict = {}
    for field in STRING_FIELDS:
        if field in data:
            values[field] = text_value(data.get(field), field)
    for field in DATE_FIELDS:
        if field in data:
            values[field] = parse_date(data.get(field), field)
    for field, allowed in ENUM_FIELDS.items():
        if field in data:
            raw = (text_value(data.get(field), field) or "").lower() or None
            if raw is not None and raw not in allowed:
                raise ValidationError(f"Invalid {field}: {raw}")
            values[field] = raw

    email = values.get("email")
    if email and not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")
    if "nationality" in values and values["nationality"]:
        values["nationality"] = values["nationality"].upper()
    return values


def _risk_profile(client: Client) -> dict:
    return {f: getattr(client, f) for f in RISK_INPUT_FIELDS}


def _high_risk_countries():
    return current_app.config.get("HIGH_RISK_COUNTRIES")


def create_audit_log(
    *,
    client_id: int,
    company_id: int,
    action: str,
    action_type: str,
    performed_by: str,
    entity_type: str | None = None,
    entity_id: int | None = None,
    old_value: Any = None,
    new_value: Any = None,
    description: str | None = None,
) -> KycAuditLog:
    """Stage an audit entry in the current session. The caller commits."""
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = (request.headers.get("X-Forwarded-For") or request.remote_addr or "").split(",")[0].strip() or None
        user_agent = (request.user_agent.string or "")[:500] or None

    row = KycAuditLog(
        client_id=int(client_id),
        company_id=int(company_id),
        action=action,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=int(entity_id) if entity_id is not None else None,
        old_value=str(old_value) if old_value is not None else None,
        new_value=str(new_value) if new_value is not None else None,
        description=description,
        performed_by=performed_by or "system",
        performed_at=_now(),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(row)
    return row


def load_client(client_id: int, company_id: int) -> Client:
    client = db.session.get(Client, int(client_id))
    if not client:
        raise NotFoundError("Client not found")
    if int(client.company_id) != int(company_id):
        raise TenantAccessError("Unauthorized access to client")
    return client


def load_document(document_id: int, company_id: int) -> KycDocument:
    doc = db.session.get(KycDocument, int(document_id))
    if not doc:
        raise NotFoundError("Document not found")
    if int(doc.company_id) != int(company_id):
        raise TenantAccessError("Unauthorized access to document")
    return doc


@contextmanager
def transaction(label: str):
    """Commit the staged mutation and its audit entry, or roll both back."""
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[KYC] %s failed", label)
        raise


def create_client(data: Mapping[str, Any], company_id: int = 1, created_by: str = "system") -> Client:
    values = _clean_profile(data)
    if not values.get("full_name"):
        raise ValidationError("Full name is required")

    values["client_type"] = values.get("client_type") or "individual"
    values["kyc_level"] = values.get("kyc_level") or "basic"
    values["country"] = values.get("country") or "UAE"

    score = calculate_initial_risk_score(values, _high_risk_countries())
    now = _now()
    client = Client(
        company_id=int(company_id),
        kyc_status="pending",
        aml_status="pending",
        risk_score=score,
        risk_category=risk_category(score),
        onboarded_by=created_by,
        onboarded_at=now,
        created_at=now,
        updated_at=now,
        **values,
    )

    with transaction("create client"):
        db.session.add(client)
        db.session.flush()
        create_audit_log(
            client_id=client.id,
            company_id=company_id,
            action="client_created",
            action_type="create",
            entity_type="client",
            entity_id=client.id,
            new_value=client.kyc_status,
            description=f"Client {client.full_name} created",
            performed_by=created_by,
        )

    current_app.logger.info(
        "[KYC] Client created: id=%s company=%s risk=%s/%s",
        client.id, company_id, client.risk_score, client.risk_category,
    )
    return client


def update_client(client_id: int, data: Mapping[str, Any], company_id: int = 1, updated_by: str = "system") -> Client:
    client = load_client(client_id, company_id)
    values = _clean_profile(data)
    if "full_name" in values and not values["full_name"]:
        raise ValidationError("Full name is required")
    if "client_type" in values and not values["client_type"]:
        values.pop("client_type")
    if "kyc_level" in values and not values["kyc_level"]:
        values.pop("kyc_level")

    old_score = int(client.risk_score or 0)
    changed = ", ".join(sorted(values)) or "no fields"
    with transaction("update client"):
        for field, value in values.items():
            setattr(client, field, value)
        score = calculate_initial_risk_score(_risk_profile(client), _high_risk_countries())
        client.risk_score = score
        client.risk_category = risk_category(score)
        client.updated_at = _now()

        create_audit_log(
            client_id=client.id,
            company_id=company_id,
            action="client_updated",
            action_type="update",
            entity_type="client",
            entity_id=client.id,
            old_value=old_score,
            new_value=score,
            description=f"Client {client.full_name} updated ({changed}); risk score {old_score} -> {score}",
            performed_by=updated_by,
        )
    current_app.logger.info("[KYC] Client updated: id=%s risk %s -> %s", client.id, old_score, score)
    return client


def get_clients(
    company_id: int = 1,
    kyc_status: str | None = None,
    aml_status: str | None = None,
    risk_category: str | None = None,
    search: str | None = None,
) -> list[Client]:
    q = Client.query.options(selectinload(Client.documents)).filter(Client.company_id == int(company_id))
    if kyc_status:
        q = q.filter(Client.kyc_status == kyc_status)
    if aml_status:
        q = q.filter(Client.aml_status == aml_status)
    if risk_category:
        q = q.filter(Client.risk_category == risk_category)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(
            db.or_(
                Client.full_name.ilike(like),
                Client.email.ilike(like),
                Client.company_name.ilike(like),
            )
        )
    return q.order_by(Client.created_at.desc(), Client.id.desc()).all()


def get_client(client_id: int, company_id: int = 1) -> Client:
    return load_client(client_id, company_id)


def update_kyc_status(
    client_id: int,
    status: str,
    updated_by: str,
    notes: str | None = None,
    company_id: int = 1,
) -> Client:
    status = (text_value(status, "status") or "").lower()
    if status not in KYC_STATUSES:
        raise ValidationError(f"Invalid KYC status: {status}")
    description = text_value(notes, "notes")

    client = load_client(client_id, company_id)
    old_status = client.kyc_status
    now = _now()
    with transaction("update KYC status"):
        client.kyc_status = status
        client.last_reviewed_at = now
        client.last_reviewed_by = updated_by
        client.updated_at = now

        create_audit_log(
            client_id=client.id,
            company_id=company_id,
            action="kyc_status_changed",
            action_type=_STATUS_ACTION_TYPES.get(status, "update"),
            entity_type="client",
            entity_id=client.id,
            old_value=old_status,
            new_value=status,
            description=description or f"KYC status changed from {old_status} to {status}",
            performed_by=updated_by,
        )
    current_app.logger.info("[KYC] KYC status updated: client=%s %s -> %s", client.id, old_status, status)
    return client


def upload_document(
    client_id: int,
    document_data: Mapping[str, Any],
    upload,
    company_id: int = 1,
    uploaded_by: str = "system",
) -> KycDocument:
    """Store an uploaded file and record it as a pending document.

    ``upload`` is a werkzeug ``FileStorage`` (or anything with ``filename``,
    ``mimetype`` and ``stream``).
    """
    client = load_client(client_id, company_id)

    filename = (getattr(upload, "filename", None) or "").strip()
    if not filename:
        raise ValidationError("No file uploaded")
    if not allowed_upload(filename, getattr(upload, "mimetype", None)):
        raise ValidationError("Only JPEG, PNG, and PDF files are allowed")

    document_type = (text_value(document_data.get("document_type"), "document_type") or "other").lower()
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError(f"Invalid document_type: {document_type}")
    issue_date = parse_date(document_data.get("issue_date"), "issue_date")
    expiry_date = parse_date(document_data.get("expiry_date"), "expiry_date")

    document_name = text_value(document_data.get("document_name"), "document_name") or filename
    document_number = text_value(document_data.get("document_number"), "document_number")
    issuing_authority = text_value(document_data.get("issuing_authority"), "issuing_authority")
    issuing_country = text_value(document_data.get("issuing_country"), "issuing_country")

    store = get_document_store()
    key, size = store.save(client.id, upload.stream, filename)
    if size <= 0:
        store.delete(key)
        raise ValidationError("Uploaded file is empty")

    now = _now()
    doc = KycDocument(
        client_id=client.id,
        company_id=int(company_id),
        document_type=document_type,
        document_name=document_name,
        document_number=document_number,
        issue_date=issue_date,
        expiry_date=expiry_date,
        issuing_authority=issuing_authority,
        issuing_country=issuing_country,
        file_path=key,
        file_name=filename,
        file_size=size,
        mime_type=getattr(upload, "mimetype", None) or "application/octet-stream",
        status="pending",
        uploaded_by=uploaded_by,
        uploaded_at=now,
        created_at=now,
        updated_at=now,
    )

    try:
        db.session.add(doc)
        db.session.flush()
        create_audit_log(
            client_id=client.id,
            company_id=company_id,
            action="document_uploaded",
            action_type="create",
            entity_type="document",
            entity_id=doc.id,
            new_value="pending",
            description=f"Document {document_name} uploaded",
            performed_by=uploaded_by,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        store.delete(key)
        current_app.logger.exception("[KYC] Upload document failed for client %s", client_id)
        raise

    current_app.logger.info("[KYC] Document uploaded: id=%s client=%s size=%s", doc.id, client.id, size)
    return doc


def _require_pending(doc: KycDocument) -> None:
    if doc.status != "pending":
        raise ConflictError(f"Document is already {doc.status}")


def verify_document(
    document_id: int,
    verified_by: str,
    verification_notes: str | None = None,
    company_id: int = 1,
) -> KycDocument:
    doc = load_document(document_id, company_id)
    _require_pending(doc)

    notes = text_value(verification_notes, "verification_notes")
    now = _now()
    with transaction("verify document"):
        doc.verified = True
        doc.verified_at = now
        doc.verified_by = verified_by
        doc.verification_notes = notes
        doc.status = "verified"
        doc.updated_at = now

        create_audit_log(
            client_id=doc.client_id,
            company_id=company_id,
            action="document_verified",
            action_type="verify",
            entity_type="document",
            entity_id=doc.id,
            old_value="pending",
            new_value="verified",
            description=f"Document {doc.document_name} verified",
            performed_by=verified_by,
        )
    current_app.logger.info("[KYC] Document verified: id=%s by %s", doc.id, verified_by)
    return doc


def reject_document(
    document_id: int,
    rejected_by: str,
    reason: str | None,
    company_id: int = 1,
) -> KycDocument:
    reason = text_value(reason, "reason")
    if not reason:
        raise ValidationError("Rejection reason is required")

    doc = load_document(document_id, company_id)
    _require_pending(doc)

    with transaction("reject document"):
        doc.verified = False
        doc.status = "rejected"
        doc.rejection_reason = reason
        doc.updated_at = _now()

        create_audit_log(
            client_id=doc.client_id,
            company_id=company_id,
            action="document_rejected",
            action_type="reject",
            entity_type="document",
            entity_id=doc.id,
            old_value="pending",
            new_value="rejected",
            description=f"Document {doc.document_name} rejected: {reason}",
            performed_by=rejected_by,
        )
    current_app.logger.info("[KYC] Document rejected: id=%s by %s", doc.id, rejected_by)
    return doc


def open_document(document_id: int, company_id: int = 1):
    doc = load_document(document_id, company_id)
    return doc, get_document_store().open(doc.file_path)


def get_audit_log(
    company_id: int = 1,
    client_id: int | None = None,
    action: str | None = None,
    limit: int = 250,
) -> list[KycAuditLog]:
    q = KycAuditLog.query.filter(KycAuditLog.company_id == int(company_id))
    if client_id is not None:
        load_client(client_id, company_id)
        q = q.filter(KycAuditLog.client_id == int(client_id))
    action = text_value(action, "action")
    if action:
        q = q.filter(KycAuditLog.action.ilike(action))
    limit = 250 if limit is None else int(limit)
    limit = max(1, min(limit, 1000))
    return q.order_by(KycAuditLog.performed_at.desc(), KycAuditLog.id.desc()).limit(limit).all()


def _counts(column, company_id: int, keys) -> dict:
    rows = (
        db.session.query(column, db.func.count())
        .filter(Client.company_id == int(company_id))
        .group_by(column)
        .all()
    )
    out = {k: 0 for k in keys}
    for key, count in rows:
        out[key] = int(count)
    return out


def get_summary(company_id: int = 1) -> dict:
    total = Client.query.filter(Client.company_id == int(company_id)).count()
    pending_documents = (
        KycDocument.query
        .filter(KycDocument.company_id == int(company_id))
        .filter(KycDocument.status == "pending")
        .count()
    )
    return {
        "total_clients": int(total),
        "kyc_status": _counts(Client.kyc_status, company_id, KYC_STATUSES),
        "aml_status": _counts(Client.aml_status, company_id, AML_STATUSES),
        "risk_category": _counts(Client.risk_category, company_id, RISK_CATEGORIES),
        "pending_documents": int(pending_documents),
    }
