"""create users and otp_verifications tables

Revision ID: c3d4e5f6a7b8
Revises:
Create Date: 2026-10-18

otp_verifications backs:
  - POST /otp/send     (insert; rate limit counts rows per phone in the last hour)
  - POST /otp/verify   (newest pending row by phone + code + purpose; attempts += 1 on miss)

The (phone_number, created_at) index serves both the rate-limit count and the
newest-first lookup.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = 'c3d4e5f6a7b8'
down_revision = None
branch_labels = None
depends_on = None

user_role = postgresql.ENUM('customer', 'facility_owner', 'admin', name='user_role', create_type=False)
user_status = postgresql.ENUM('active', 'banned', 'inactive', name='user_status', create_type=False)
auth_method = postgresql.ENUM('otp', 'password', 'both', name='auth_method', create_type=False)
otp_purpose = postgresql.ENUM(
    'registration', 'login', 'phone_verification', 'password_reset',
    name='otp_purpose', create_type=False,
)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in (user_role, user_status, auth_method, otp_purpose):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('status', user_status, nullable=False),
        sa.Column('phone', sa.String(16), nullable=True),
        sa.Column('phone_verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('preferred_auth_method', auth_method, nullable=False),
        sa.Column('last_otp_sent', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_phone', 'users', ['phone'], unique=True)

    op.create_table(
        'otp_verifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=True,
        ),
        sa.Column('phone_number', sa.String(16), nullable=False),
        sa.Column('otp_code', sa.String(6), nullable=False),
        sa.Column('purpose', otp_purpose, nullable=False),
        sa.Column('is_verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('max_attempts', sa.Integer(), server_default='3', nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('verified_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('attempts >= 0 AND attempts <= max_attempts', name='ck_otp_attempts_bounded'),
    )
    op.create_index('ix_otp_verifications_user_id', 'otp_verifications', ['user_id'])
    op.create_index('ix_otp_verifications_phone_number', 'otp_verifications', ['phone_number'])
    op.create_index(
        'ix_otp_verifications_phone_created', 'otp_verifications', ['phone_number', 'created_at']
    )


def downgrade() -> None:
    op.drop_table('otp_verifications')
    op.drop_table('users')
    bind = op.get_bind()
    for enum_type in (otp_purpose, auth_method, user_status, user_role):
        enum_type.drop(bind, checkfirst=True)
