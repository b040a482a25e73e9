import json
from datetime import datetime

from kycdesk.extensions import db

SCREENING_TYPES = ("sanctions", "pep", "adverse_media", "watchlist")


class AmlScreening(db.Model):
    __tablename__ = "aml_screenings"

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = db.Column(db.Integer, nullable=False, default=1, index=True)

    screening_type = db.Column(db.String(32), nullable=False, default="sanctions")
    screening_source = db.Column(db.String(100), nullable=True)
    screening_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    match_found = db.Column(db.Boolean, nullable=False, default=False)
    match_score = db.Column(db.Numeric(5, 2, asdecimal=False), nullable=True)
    match_details = db.Column(db.Text, nullable=True)
    matched_lists_json = db.Column("matched_lists", db.Text, nullable=True)

    decision = db.Column(db.String(16), nullable=False, default="pending")  # pending|cleared|flagged|blocked
    decision_notes = db.Column(db.Text, nullable=True)
    decided_by = db.Column(db.String(255), nullable=True)
    decided_at = db.Column(db.DateTime, nullable=True)

    screened_by = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def matched_lists(self) -> list:
        if not self.matched_lists_json:
            return []
        try:
            return list(json.loads(self.matched_lists_json))
        except (TypeError, ValueError):
            return []

    @matched_lists.setter
    def matched_lists(self, value) -> None:
        self.matched_lists_json = json.dumps(list(value)) if value else None

    def to_dict(self):
        return {
            "id": int(self.id),
            "client_id": int(self.client_id),
            "company_id": int(self.company_id),
            "screening_type": self.screening_type,
            "screening_source": self.screening_source,
            "screening_date": self.screening_date.isoformat() if self.screening_date else None,
            "match_found": bool(self.match_found),
            "match_score": float(self.match_score) if self.match_score is not None else None,
            "match_details": self.match_details,
            "matched_lists": self.matched_lists,
            "decision": self.decision,
            "decision_notes": self.decision_notes,
            "decided_by": self.decided_by,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
            "screened_by": self.screened_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
