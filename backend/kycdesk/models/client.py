from datetime import datetime

from kycdesk.extensions import db

CLIENT_TYPES = ("individual", "company")
KYC_STATUSES = ("pending", "in_review", "approved", "rejected", "expired")
KYC_LEVELS = ("basic", "enhanced", "simplified")
RISK_CATEGORIES = ("low", "medium", "high")
AML_STATUSES = ("pending", "cleared", "flagged", "blocked")
PEP_STATUSES = ("politically_exposed_person", "family_member", "close_associate", "none")


def _iso(value):
    return value.isoformat() if value else None


class Client(db.Model):
    __tablename__ = "clients"
    __table_args__ = (
        db.CheckConstraint("risk_score >= 0 AND risk_score <= 100", name="ck_clients_risk_score_range"),
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, nullable=False, default=1, index=True)

    # Basic information
    client_type = db.Column(db.String(16), nullable=False, default="individual")
    full_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)
    nationality = db.Column(db.String(100), nullable=True)

    # Company information
    company_name = db.Column(db.String(255), nullable=True)
    trade_license_number = db.Column(db.String(100), nullable=True)
    company_registration_date = db.Column(db.Date, nullable=True)

    # Identification
    emirates_id = db.Column(db.String(50), nullable=True)
    passport_number = db.Column(db.String(50), nullable=True)
    passport_country = db.Column(db.String(100), nullable=True)
    passport_expiry = db.Column(db.Date, nullable=True)
    trn = db.Column(db.String(50), nullable=True)

    # Address
    address = db.Column(db.Text, nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(100), nullable=True)
    country = db.Column(db.String(100), nullable=True, default="UAE")
    postal_code = db.Column(db.String(20), nullable=True)

    # KYC
    kyc_status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    kyc_level = db.Column(db.String(16), nullable=False, default="basic")
    risk_score = db.Column(db.Integer, nullable=False, default=0)
    risk_category = db.Column(db.String(8), nullable=False, default="low", index=True)

    # AML
    aml_status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    aml_screened_at = db.Column(db.DateTime, nullable=True)
    aml_screened_by = db.Column(db.String(255), nullable=True)
    aml_match_found = db.Column(db.Boolean, nullable=False, default=False)
    aml_match_details = db.Column(db.Text, nullable=True)

    pep_status = db.Column(db.String(32), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    onboarded_by = db.Column(db.String(255), nullable=False)
    onboarded_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    last_reviewed_at = db.Column(db.DateTime, nullable=True)
    last_reviewed_by = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    documents = db.relationship(
        "KycDocument",
        backref="client",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="KycDocument.id.desc()",
    )
    screenings = db.relationship(
        "AmlScreening",
        backref="client",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="AmlScreening.screening_date.desc()",
    )

    def to_dict(self, include_documents: bool = False):
        data = {
            "id": int(self.id),
            "company_id": int(self.company_id),
            "client_type": self.client_type,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "date_of_birth": _iso(self.date_of_birth),
            "nationality": self.nationality,
            "company_name": self.company_name,
            "trade_license_number": self.trade_license_number,
            "company_registration_date": _iso(self.company_registration_date),
            "emirates_id": self.emirates_id,
            "passport_number": self.passport_number,
            "passport_country": self.passport_country,
            "passport_expiry": _iso(self.passport_expiry),
            "trn": self.trn,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "postal_code": self.postal_code,
            "kyc_status": self.kyc_status,
            "kyc_level": self.kyc_level,
            "risk_score": int(self.risk_score or 0),
            "risk_category": self.risk_category,
            "aml_status": self.aml_status,
            "aml_screened_at": _iso(self.aml_screened_at),
            "aml_screened_by": self.aml_screened_by,
            "aml_match_found": bool(self.aml_match_found),
            "aml_match_details": self.aml_match_details,
            "pep_status": self.pep_status,
            "notes": self.notes or "",
            "onboarded_by": self.onboarded_by,
            "onboarded_at": _iso(self.onboarded_at),
            "last_reviewed_at": _iso(self.last_reviewed_at),
            "last_reviewed_by": self.last_reviewed_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_documents:
            data["documents"] = [d.to_dict() for d in self.documents]
        return data
