"""create_budget_core_tables

Revision ID: 3f9a1c2e7b40
Revises:
Create Date: 2026-10-12 10:14:52.118304

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2e7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('last_login_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'budget_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('currency', sa.String(length=3), server_default='USD', nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_id'),
    )

    op.create_table(
        'user_budget_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('budget_profile_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['budget_profile_id'], ['budget_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'budget_profile_id', name='uq_user_budget_profile'),
    )
    op.create_index('ix_user_budget_profiles_user_id', 'user_budget_profiles', ['user_id'])
    op.create_index('ix_user_budget_profiles_budget_profile_id', 'user_budget_profiles', ['budget_profile_id'])

    op.create_table(
        'envelopes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('budget_profile_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(precision=20, scale=2), server_default='0', nullable=False),
        sa.Column('spent', sa.Numeric(precision=20, scale=2), server_default='0', nullable=False),
        sa.Column('color', sa.String(length=32), nullable=True),
        sa.Column('icon', sa.String(length=64), nullable=True),
        sa.Column('is_archived', sa.Boolean(), server_default='false', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['budget_profile_id'], ['budget_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_envelopes_budget_profile_id', 'envelopes', ['budget_profile_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('budget_profile_id', sa.Integer(), nullable=False),
        sa.Column('envelope_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['budget_profile_id'], ['budget_profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['envelope_id'], ['envelopes.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_budget_profile_id', 'transactions', ['budget_profile_id'])
    op.create_index('ix_transactions_envelope_id', 'transactions', ['envelope_id'])
    op.create_index('ix_transactions_date', 'transactions', ['date'])
    op.create_index('ix_transactions_profile_date', 'transactions', ['budget_profile_id', 'date'])

    op.create_table(
        'invitations',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('budget_profile_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('invited_by_user_id', sa.Integer(), nullable=True),
        sa.Column('accepted_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['budget_profile_id'], ['budget_profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invited_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['accepted_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token'),
    )
    op.create_index('ix_invitations_email', 'invitations', ['email'])
    op.create_index('ix_invitations_budget_profile_id', 'invitations', ['budget_profile_id'])
    op.create_index('ix_invitations_status', 'invitations', ['status'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_invitations_status', table_name='invitations')
    op.drop_index('ix_invitations_budget_profile_id', table_name='invitations')
    op.drop_index('ix_invitations_email', table_name='invitations')
    op.drop_table('invitations')

    op.drop_index('ix_transactions_profile_date', table_name='transactions')
    op.drop_index('ix_transactions_date', table_name='transactions')
    op.drop_index('ix_transactions_envelope_id', table_name='transactions')
    op.drop_index('ix_transactions_budget_profile_id', table_name='transactions')
    op.drop_table('transactions')

    op.drop_index('ix_envelopes_budget_profile_id', table_name='envelopes')
    op.drop_table('envelopes')

    op.drop_index('ix_user_budget_profiles_budget_profile_id', table_name='user_budget_profiles')
    op.drop_index('ix_user_budget_profiles_user_id', table_name='user_budget_profiles')
    op.drop_table('user_budget_profiles')

    op.drop_table('budget_profiles')
    op.drop_table('users')
