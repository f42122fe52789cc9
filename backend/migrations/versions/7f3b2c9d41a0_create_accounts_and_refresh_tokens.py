"""create accounts and refresh_tokens

Revision ID: 7f3b2c9d41a0
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '7f3b2c9d41a0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('profile_image', sa.String(length=512), nullable=True),
        sa.Column('role', sa.Enum('ADMIN', 'USER', name='account_role', native_enum=False, length=16), nullable=False),
        sa.Column('provider', sa.Enum('LOCAL', 'GITHUB', 'GOOGLE', 'KAKAO', name='auth_provider', native_enum=False, length=16), nullable=False),
        sa.Column('provider_id', sa.String(length=255), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint(
            "(provider = 'LOCAL' AND provider_id IS NULL) "
            "OR (provider <> 'LOCAL' AND provider_id IS NOT NULL)",
            name=op.f('ck_accounts_provider_id_matches_provider'),
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_accounts')),
        sa.UniqueConstraint('email', name='uq_accounts_email'),
        sa.UniqueConstraint('username', name='uq_accounts_username'),
        sa.UniqueConstraint('provider', 'provider_id', name='uq_accounts_provider_external_id'),
    )
    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'],
            name=op.f('fk_refresh_tokens_account_id_accounts'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_refresh_tokens')),
        sa.UniqueConstraint('account_id', name='uq_refresh_tokens_account_id'),
        sa.UniqueConstraint('token', name='uq_refresh_tokens_token'),
    )


def downgrade():
    op.drop_table('refresh_tokens')
    op.drop_table('accounts')
