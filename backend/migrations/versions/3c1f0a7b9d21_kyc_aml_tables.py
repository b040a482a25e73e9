"""kyc aml tables

Revision ID: 3c1f0a7b9d21
Revises:
Create Date: 2026-10-18 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c1f0a7b9d21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=True)
        batch_op.create_index(batch_op.f('ix_users_company_id'), ['company_id'], unique=False)

    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('client_type', sa.String(length=16), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('nationality', sa.String(length=100), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('trade_license_number', sa.String(length=100), nullable=True),
        sa.Column('company_registration_date', sa.Date(), nullable=True),
        sa.Column('emirates_id', sa.String(length=50), nullable=True),
        sa.Column('passport_number', sa.String(length=50), nullable=True),
        sa.Column('passport_country', sa.String(length=100), nullable=True),
        sa.Column('passport_expiry', sa.Date(), nullable=True),
        sa.Column('trn', sa.String(length=50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=100), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('postal_code', sa.String(length=20), nullable=True),
        sa.Column('kyc_status', sa.String(length=16), nullable=False),
        sa.Column('kyc_level', sa.String(length=16), nullable=False),
        sa.Column('risk_score', sa.Integer(), nullable=False),
        sa.Column('risk_category', sa.String(length=8), nullable=False),
        sa.Column('aml_status', sa.String(length=16), nullable=False),
        sa.Column('aml_screened_at', sa.DateTime(), nullable=True),
        sa.Column('aml_screened_by', sa.String(length=255), nullable=True),
        sa.Column('aml_match_found', sa.Boolean(), nullable=False),
        sa.Column('aml_match_details', sa.Text(), nullable=True),
        sa.Column('pep_status', sa.String(length=32), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('onboarded_by', sa.String(length=255), nullable=False),
        sa.Column('onboarded_at', sa.DateTime(), nullable=False),
        sa.Column('last_reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('last_reviewed_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('risk_score >= 0 AND risk_score <= 100', name='ck_clients_risk_score_range'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('clients', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_clients_company_id'), ['company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_clients_kyc_status'), ['kyc_status'], unique=False)
        batch_op.create_index(batch_op.f('ix_clients_risk_category'), ['risk_category'], unique=False)
        batch_op.create_index(batch_op.f('ix_clients_aml_status'), ['aml_status'], unique=False)

    op.create_table(
        'kyc_documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('document_name', sa.String(length=255), nullable=False),
        sa.Column('document_number', sa.String(length=100), nullable=True),
        sa.Column('issue_date', sa.Date(), nullable=True),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('issuing_authority', sa.String(length=255), nullable=True),
        sa.Column('issuing_country', sa.String(length=100), nullable=True),
        sa.Column('file_path', sa.String(length=500), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('mime_type', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('verified_by', sa.String(length=255), nullable=True),
        sa.Column('verification_notes', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('uploaded_by', sa.String(length=255), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('kyc_documents', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_kyc_documents_client_id'), ['client_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_kyc_documents_company_id'), ['company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_kyc_documents_expiry_date'), ['expiry_date'], unique=False)
        batch_op.create_index(batch_op.f('ix_kyc_documents_status'), ['status'], unique=False)

    op.create_table(
        'aml_screenings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('screening_type', sa.String(length=32), nullable=False),
        sa.Column('screening_source', sa.String(length=100), nullable=True),
        sa.Column('screening_date', sa.DateTime(), nullable=False),
        sa.Column('match_found', sa.Boolean(), nullable=False),
        sa.Column('match_score', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('match_details', sa.Text(), nullable=True),
        sa.Column('matched_lists', sa.Text(), nullable=True),
        sa.Column('decision', sa.String(length=16), nullable=False),
        sa.Column('decision_notes', sa.Text(), nullable=True),
        sa.Column('decided_by', sa.String(length=255), nullable=True),
        sa.Column('decided_at', sa.DateTime(), nullable=True),
        sa.Column('screened_by', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('aml_screenings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_aml_screenings_client_id'), ['client_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_aml_screenings_company_id'), ['company_id'], unique=False)

    op.create_table(
        'kyc_audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('action_type', sa.String(length=16), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.String(length=255), nullable=False),
        sa.Column('performed_at', sa.DateTime(), nullable=False),
        sa.Column('ip_address', sa.String(length=50), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('kyc_audit_log', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_kyc_audit_log_client_id'), ['client_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_kyc_audit_log_company_id'), ['company_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_kyc_audit_log_action'), ['action'], unique=False)


def downgrade():
    op.drop_table('kyc_audit_log')
    op.drop_table('aml_screenings')
    op.drop_table('kyc_documents')
    op.drop_table('clients')
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_users_company_id'))
        batch_op.drop_index(batch_op.f('ix_users_email'))

    op.drop_table('users')
