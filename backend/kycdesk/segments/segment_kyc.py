from __future__ import annotations

import re
from io import BytesIO

from flask import Blueprint, current_app, g, jsonify, request, send_file
from flask_login import current_user
from werkzeug.exceptions import HTTPException

from kycdesk.config import is_production
from kycdesk.errors import KycError
from kycdesk.extensions import db
from kycdesk.services import aml as aml_service
from kycdesk.services import kyc as kyc_service
from kycdesk.utils.report_pdf import render_client_report_pdf
from kycdesk.utils.tenant import actor_label, current_company_id

kyc_bp = Blueprint("kyc_bp", __name__, url_prefix="/api/kyc")

_INIT_DONE = False

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def _payload() -> dict:
    """JSON body (or form fields for multipart) with camelCase keys folded to snake_case."""
    raw = request.get_json(silent=True)
    if raw is None:
        raw = request.form.to_dict() if request.form else {}
    if not isinstance(raw, dict):
        return {}
    return {_snake(k): v for k, v in raw.items()}


def _arg(*names: str) -> str | None:
    for name in names:
        val = (request.args.get(name) or "").strip()
        if val:
            return val
    return None


@kyc_bp.before_app_request
def _ensure_tables_once():
    global _INIT_DONE
    if _INIT_DONE:
        return
    _INIT_DONE = True
    if is_production(current_app.config.get("KYCDESK_ENV")):
        return
    try:
        db.create_all()
    except Exception as e:
        current_app.logger.warning("[KYC] create_all skipped: %s", e)


@kyc_bp.before_request
def _require_compliance_admin():
    if not current_user.is_authenticated:
        return jsonify({"message": "Unauthorized: missing or invalid token"}), 401
    if not current_user.is_admin:
        return jsonify({"message": "Forbidden: admin role required"}), 403
    g.company_id = current_company_id(current_user)
    g.actor = actor_label(current_user)
    return None


@kyc_bp.errorhandler(KycError)
def _kyc_error(e: KycError):
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


@kyc_bp.errorhandler(Exception)
def _unexpected_error(e: Exception):
    if isinstance(e, HTTPException):
        return e
    db.session.rollback()
    current_app.logger.exception("[KYC] Unhandled error on %s %s", request.method, request.path)
    return jsonify({"message": "Request failed", "error": str(e)}), 500


# -----------------------------
# Clients
# -----------------------------
@kyc_bp.get("")
def list_clients():
    clients = kyc_service.get_clients(
        company_id=g.company_id,
        kyc_status=_arg("kycStatus", "kyc_status"),
        aml_status=_arg("amlStatus", "aml_status"),
        risk_category=_arg("riskCategory", "risk_category"),
        search=_arg("q", "search"),
    )
    return jsonify([c.to_dict(include_documents=True) for c in clients]), 200


@kyc_bp.post("")
def create_client():
    client = kyc_service.create_client(_payload(), company_id=g.company_id, created_by=g.actor)
    return jsonify(client.to_dict(include_documents=True)), 201


@kyc_bp.get("/summary")
def summary():
    return jsonify(kyc_service.get_summary(company_id=g.company_id)), 200


@kyc_bp.get("/audit-log")
def tenant_audit_log():
    rows = kyc_service.get_audit_log(
        company_id=g.company_id,
        action=_arg("action"),
        limit=request.args.get("limit", 250, type=int),
    )
    return jsonify([r.to_dict() for r in rows]), 200


@kyc_bp.get("/<int:client_id>")
def get_client(client_id: int):
    client = kyc_service.get_client(client_id, company_id=g.company_id)
    return jsonify(client.to_dict(include_documents=True)), 200


@kyc_bp.put("/<int:client_id>")
def update_client(client_id: int):
    client = kyc_service.update_client(client_id, _payload(), company_id=g.company_id, updated_by=g.actor)
    return jsonify(client.to_dict(include_documents=True)), 200


@kyc_bp.put("/<int:client_id>/kyc-status")
def update_kyc_status(client_id: int):
    payload = _payload()
    status = kyc_service.text_value(payload.get("status"), "status")
    if not status:
        return jsonify({"message": "Status is required"}), 400
    client = kyc_service.update_kyc_status(
        client_id,
        status,
        updated_by=g.actor,
        notes=payload.get("notes"),
        company_id=g.company_id,
    )
    return jsonify(client.to_dict(include_documents=True)), 200


@kyc_bp.get("/<int:client_id>/audit-log")
def client_audit_log(client_id: int):
    rows = kyc_service.get_audit_log(
        company_id=g.company_id,
        client_id=client_id,
        action=_arg("action"),
        limit=request.args.get("limit", 250, type=int),
    )
    return jsonify([r.to_dict() for r in rows]), 200


@kyc_bp.get("/<int:client_id>/report.pdf")
def client_report(client_id: int):
    client = kyc_service.get_client(client_id, company_id=g.company_id)
    screenings = aml_service.get_client_screenings(client_id, company_id=g.company_id)
    audit = kyc_service.get_audit_log(company_id=g.company_id, client_id=client_id, limit=25)
    pdf = render_client_report_pdf(
        client.to_dict(),
        [d.to_dict() for d in client.documents],
        [s.to_dict() for s in screenings],
        [a.to_dict() for a in audit],
    )
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"client-{client.id}-kyc-report.pdf",
    )


# -----------------------------
# Documents
# -----------------------------
@kyc_bp.post("/<int:client_id>/documents")
def upload_document(client_id: int):
    upload = request.files.get("file")
    if upload is None or not (upload.filename or "").strip():
        return jsonify({"message": "No file uploaded"}), 400
    doc = kyc_service.upload_document(
        client_id,
        _payload(),
        upload,
        company_id=g.company_id,
        uploaded_by=g.actor,
    )
    return jsonify(doc.to_dict()), 201


@kyc_bp.put("/documents/<int:document_id>/verify")
def verify_document(document_id: int):
    payload = _payload()
    doc = kyc_service.verify_document(
        document_id,
        verified_by=g.actor,
        verification_notes=payload.get("verification_notes"),
        company_id=g.company_id,
    )
    return jsonify(doc.to_dict()), 200


@kyc_bp.put("/documents/<int:document_id>/reject")
def reject_document(document_id: int):
    payload = _payload()
    doc = kyc_service.reject_document(
        document_id,
        rejected_by=g.actor,
        reason=payload.get("reason") or payload.get("rejection_reason"),
        company_id=g.company_id,
    )
    return jsonify(doc.to_dict()), 200


@kyc_bp.get("/documents/<int:document_id>/download")
def download_document(document_id: int):
    doc, stream = kyc_service.open_document(document_id, company_id=g.company_id)
    return send_file(
        stream,
        mimetype=doc.mime_type or "application/octet-stream",
        as_attachment=True,
        download_name=doc.file_name,
    )


# -----------------------------
# AML screening
# -----------------------------
@kyc_bp.post("/<int:client_id>/aml-screening")
def perform_aml_screening(client_id: int):
    payload = _payload()
    screening = aml_service.perform_aml_screening(
        client_id,
        screening_type=payload.get("screening_type") or "sanctions",
        company_id=g.company_id,
        screened_by=g.actor,
    )
    return jsonify(screening.to_dict()), 201


@kyc_bp.get("/<int:client_id>/aml-screenings")
def client_screenings(client_id: int):
    rows = aml_service.get_client_screenings(client_id, company_id=g.company_id)
    return jsonify([s.to_dict() for s in rows]), 200


@kyc_bp.put("/aml-screenings/<int:screening_id>/decision")
def update_screening_decision(screening_id: int):
    payload = _payload()
    decision = kyc_service.text_value(payload.get("decision"), "decision")
    if not decision:
        return jsonify({"message": "Decision is required"}), 400
    screening = aml_service.update_screening_decision(
        screening_id,
        decision,
        decided_by=g.actor,
        decision_notes=payload.get("decision_notes"),
        company_id=g.company_id,
    )
    return jsonify(screening.to_dict()), 200
