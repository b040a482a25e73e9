from datetime import datetime

from kycdesk.extensions import db


class KycAuditLog(db.Model):
    """Append-only trail of KYC/AML state transitions."""

    __tablename__ = "kyc_audit_log"

    id = db.Column(db.Integer, primary_key=True)

    client_id = db.Column(db.Integer, db.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = db.Column(db.Integer, nullable=False, default=1, index=True)

    action = db.Column(db.String(50), nullable=False, index=True)
    action_type = db.Column(db.String(16), nullable=False)  # create|update|delete|verify|screen|approve|reject
    entity_type = db.Column(db.String(50), nullable=True)  # client|document|screening
    entity_id = db.Column(db.Integer, nullable=True)

    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)

    performed_by = db.Column(db.String(255), nullable=False)
    performed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    ip_address = db.Column(db.String(50), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)

    def to_dict(self):
        return {
            "id": int(self.id),
            "client_id": int(self.client_id),
            "company_id": int(self.company_id),
            "action": self.action,
            "action_type": self.action_type,
            "entity_type": self.entity_type or "",
            "entity_id": int(self.entity_id) if self.entity_id is not None else None,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "description": self.description or "",
            "performed_by": self.performed_by,
            "performed_at": self.performed_at.isoformat() if self.performed_at else None,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
        }
