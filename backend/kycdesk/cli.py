from __future__ import annotations

import click
from flask import current_app
from flask.cli import AppGroup

from kycdesk.extensions import db
from kycdesk.models import User

kyc_cli = AppGroup("kyc", help="KYC/AML back-office maintenance commands.")


@kyc_cli.command("create-user")
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--company-id", type=int, default=1, show_default=True)
@click.option("--role", type=click.Choice(["admin", "staff"]), default="admin", show_default=True)
@click.option("--name", default="")
def create_user(email, password, company_id, role, name):
    """Create (or update the password of) a staff user."""
    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    created = user is None
    if created:
        user = User(email=email)
    user.name = name or user.name or ""
    user.role = role
    user.company_id = company_id
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    click.echo(f"{'Created' if created else 'Updated'} {role} user {email} (company {company_id})")


@kyc_cli.command("expire-documents")
@click.option("--limit", type=int, default=500, show_default=True)
def expire_documents(limit):
    """Expire documents whose expiry date has passed."""
    from kycdesk.jobs.document_expiry import run_document_expiry

    result = run_document_expiry(limit=limit)
    click.echo(f"processed={result['processed']} expired={result['expired']} errors={result['errors']}")


@kyc_cli.command("refresh-watchlists")
def refresh_watchlists():
    """Reload screening lists from WATCHLIST_FILE / WATCHLIST_URL."""
    from kycdesk.utils.watchlists import list_counts, load_watchlists

    lists = load_watchlists(current_app)
    current_app.extensions["kyc_watchlists"] = lists
    for kind, count in list_counts(lists).items():
        click.echo(f"{kind}: {count}")
