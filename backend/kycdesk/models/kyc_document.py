from datetime import datetime

from kycdesk.extensions import db

DOCUMENT_TYPES = ("passport", "emirates_id", "trade_license", "proof_of_address", "bank_statement", "other")
DOCUMENT_STATUSES = ("pending", "verified", "rejected", "expired")


class KycDocument(db.Model):
    __tablename__ = "kyc_documents"

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = db.Column(db.Integer, nullable=False, default=1, index=True)

    document_type = db.Column(db.String(32), nullable=False, default="other")
    document_name = db.Column(db.String(255), nullable=False)
    document_number = db.Column(db.String(100), nullable=True)
    issue_date = db.Column(db.Date, nullable=True)
    expiry_date = db.Column(db.Date, nullable=True, index=True)
    issuing_authority = db.Column(db.String(255), nullable=True)
    issuing_country = db.Column(db.String(100), nullable=True)

    # Storage key, relative to the upload folder
    file_path = db.Column(db.String(500), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_size = db.Column(db.BigInteger, nullable=True)
    mime_type = db.Column(db.String(100), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)  # pending|verified|rejected|expired
    verified = db.Column(db.Boolean, nullable=False, default=False)
    verified_at = db.Column(db.DateTime, nullable=True)
    verified_by = db.Column(db.String(255), nullable=True)
    verification_notes = db.Column(db.Text, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    uploaded_by = db.Column(db.String(255), nullable=False)
    uploaded_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": int(self.id),
            "client_id": int(self.client_id),
            "company_id": int(self.company_id),
            "document_type": self.document_type,
            "document_name": self.document_name,
            "document_number": self.document_number,
            "issue_date": self.issue_date.isoformat() if self.issue_date else None,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "issuing_authority": self.issuing_authority,
            "issuing_country": self.issuing_country,
            "file_path": self.file_path,
            "file_name": self.file_name,
            "file_size": int(self.file_size or 0),
            "mime_type": self.mime_type,
            "status": self.status,
            "verified": bool(self.verified),
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "verified_by": self.verified_by,
            "verification_notes": self.verification_notes,
            "rejection_reason": self.rejection_reason,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }
