from datetime import datetime

from flask_login import UserMixin
from sqlalchemy.orm import validates
from werkzeug.security import generate_password_hash, check_password_hash

from kycdesk.extensions import db

STAFF_ROLES = ("admin", "staff")


class User(db.Model, UserMixin):
    """Back-office staff account. Only admins may work the KYC desk."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, nullable=False, default=1, index=True)

    name = db.Column(db.String(120), nullable=False, default="")
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="staff")

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @validates("email")
    def _normalize_email(self, _key, value):
        return (value or "").strip().lower()

    @validates("role")
    def _check_role(self, _key, value):
        role = (value or "staff").strip().lower()
        if role not in STAFF_ROLES:
            raise ValueError(f"unknown role: {value}")
        return role

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def set_password(self, raw_password: str) -> None:
        self.password_hash = generate_password_hash(raw_password)

    def check_password(self, raw_password: str) -> bool:
        return bool(self.password_hash) and check_password_hash(self.password_hash, raw_password)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": int(self.company_id or 1),
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
