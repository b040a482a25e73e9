"""Shared pytest fixtures for kycdesk tests."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

import pytest

from kycdesk import create_app
from kycdesk.config import TestConfig
from kycdesk.extensions import db
from kycdesk.models import User
from kycdesk.utils.jwt_utils import create_access_token

ADMIN_EMAIL = "officer@acme.test"
STAFF_EMAIL = "clerk@acme.test"
OTHER_ADMIN_EMAIL = "officer@globex.test"
DEVELOPER_EMAIL = "dev@kycdesk.test"


@pytest.fixture
def app(tmp_path: Path):
    """Fresh app with an in-memory database and a temp upload folder."""
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": TestConfig.SECRET_KEY,
        "SQLALCHEMY_DATABASE_URI": TestConfig.SQLALCHEMY_DATABASE_URI,
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "WATCHLIST_FILE": "",
        "WATCHLIST_URL": "",
        "DEVELOPER_EMAILS": [DEVELOPER_EMAIL],
        "DEVELOPER_EMAIL_DOMAINS": [],
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    """Pushed app context for service-level tests."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def _make_user(email: str, role: str, company_id: int) -> int:
    user = User(name=email.split("@")[0], email=email, role=role, company_id=company_id)
    user.set_password("s3cret-pass")
    db.session.add(user)
    db.session.commit()
    return user.id


@pytest.fixture
def users(app) -> dict:
    """Users across two tenants, keyed by label, with bearer tokens."""
    out = {}
    with app.app_context():
        for label, email, role, company_id in (
            ("admin", ADMIN_EMAIL, "admin", 1),
            ("staff", STAFF_EMAIL, "staff", 1),
            ("other_admin", OTHER_ADMIN_EMAIL, "admin", 2),
            ("developer", DEVELOPER_EMAIL, "admin", 1),
        ):
            user_id = _make_user(email, role, company_id)
            out[label] = {
                "id": user_id,
                "email": email,
                "token": create_access_token(user_id),
            }
    return out


def auth_headers(user: dict, **extra) -> dict:
    headers = {"Authorization": f"Bearer {user['token']}"}
    headers.update(extra)
    return headers


@pytest.fixture
def admin_headers(users) -> dict:
    return auth_headers(users["admin"])


def pdf_upload(name: str = "passport.pdf", payload: bytes = b"%PDF-1.4\n% test document\n"):
    return (BytesIO(payload), name, "application/pdf")
