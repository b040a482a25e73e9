from __future__ import annotations

from io import BytesIO
from datetime import datetime
from typing import Any, Dict, List

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas


def render_client_report_pdf(
    client: Dict[str, Any],
    documents: List[Dict[str, Any]],
    screenings: List[Dict[str, Any]],
    audit: List[Dict[str, Any]],
) -> bytes:
    """Render a client's KYC/AML file (profile, documents, screenings, recent audit) as a PDF."""
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4

    y = height - 60

    def line(txt: str, size: int = 11, bold: bool = False, dy: int = 16):
        nonlocal y
        if y < 60:
            c.showPage()
            y = height - 60
        c.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        c.drawString(50, y, txt[:110])
        y -= dy

    line("KYC / AML Client Report", 18, True, 26)
    line(f"Generated: {datetime.utcnow().isoformat()}Z", 9, False, 20)

    line(f"Client #{client.get('id', '')}: {client.get('full_name', '')}", 13, True, 20)
    line(f"Type: {client.get('client_type', '')}    Level: {client.get('kyc_level', '')}")
    if client.get("company_name"):
        line(f"Company: {client.get('company_name')}    Trade licence: {client.get('trade_license_number') or '-'}")
    line(f"Nationality: {client.get('nationality') or '-'}    Country: {client.get('country') or '-'}")
    line(f"Emirates ID: {client.get('emirates_id') or '-'}    Passport: {client.get('passport_number') or '-'}")

    line("", dy=8)
    line("Status", 12, True, 18)
    line(f"KYC status: {client.get('kyc_status', '')}")
    line(f"Risk: {client.get('risk_score', 0)} ({client.get('risk_category', '')})")
    line(f"AML status: {client.get('aml_status', '')}    PEP: {client.get('pep_status') or 'unknown'}")
    if client.get("last_reviewed_at"):
        line(f"Last reviewed: {client.get('last_reviewed_at')} by {client.get('last_reviewed_by') or '-'}")

    line("", dy=8)
    line(f"Documents ({len(documents)})", 12, True, 18)
    for d in documents:
        line(f"- {d.get('document_type', '')}: {d.get('document_name', '')} [{d.get('status', '')}]"
             f" expires {d.get('expiry_date') or '-'}", 10, False, 14)

    line("", dy=8)
    line(f"AML screenings ({len(screenings)})", 12, True, 18)
    for s in screenings:
        score = s.get("match_score")
        line(f"- {s.get('screening_date', '')} {s.get('screening_type', '')}: {s.get('decision', '')}"
             f" (match score {score if score is not None else '-'})", 10, False, 14)

    line("", dy=8)
    line("Recent audit trail", 12, True, 18)
    for a in audit[:25]:
        line(f"- {a.get('performed_at', '')} {a.get('action', '')} by {a.get('performed_by', '')}", 9, False, 13)

    c.showPage()
    c.save()
    return buf.getvalue()
