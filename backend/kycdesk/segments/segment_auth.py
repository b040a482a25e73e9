from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from kycdesk.extensions import db, login_manager
from kycdesk.models import User
from kycdesk.utils.jwt_utils import create_access_token, get_bearer_token, user_id_from_token

api_auth = Blueprint("api_auth", __name__, url_prefix="/api/auth")


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.request_loader
def load_user_from_request(req):
    """Resolve ``Authorization: Bearer <jwt>`` to a staff user."""
    token = get_bearer_token(req.headers.get("Authorization", ""))
    if not token:
        return None
    user_id = user_id_from_token(token)
    if user_id is None:
        return None
    return db.session.get(User, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"message": "Unauthorized: missing or invalid token"}), 401


@api_auth.post("/login")
def api_login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        return jsonify({"message": "email and password required"}), 400

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return jsonify({"message": "invalid credentials"}), 401

    token = create_access_token(user.id)
    return jsonify({"token": token, "user": user.to_dict()})


@api_auth.get("/me")
@login_required
def api_me():
    return jsonify({"user": current_user.to_dict()})
