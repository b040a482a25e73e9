from __future__ import annotations

from flask import current_app, request


def is_developer_email(email: str | None) -> bool:
    if not email:
        return False
    email_lower = email.strip().lower()

    domains = [d.lower() for d in (current_app.config.get("DEVELOPER_EMAIL_DOMAINS") or [])]
    for domain in domains:
        domain = domain if domain.startswith("@") else f"@{domain}"
        if email_lower.endswith(domain):
            return True

    allowed = [e.lower() for e in (current_app.config.get("DEVELOPER_EMAILS") or [])]
    return email_lower in allowed


def current_company_id(user) -> int:
    """Tenant for the request: the user's company, or X-Company-Id for developers."""
    company_id = int(getattr(user, "company_id", None) or 1)
    override = (request.headers.get("X-Company-Id") or "").strip()
    if override and is_developer_email(getattr(user, "email", None)):
        try:
            company_id = int(override)
        except ValueError:
            current_app.logger.warning("[Tenant] Ignoring invalid X-Company-Id header: %r", override)
        else:
            current_app.logger.info("[Tenant] Developer %s acting on company %s", user.email, company_id)
    return company_id


def actor_label(user) -> str:
    email = (getattr(user, "email", None) or "").strip()
    if email:
        return email
    uid = getattr(user, "id", None)
    return f"user:{uid}" if uid is not None else "unknown"
