"""create_directory_and_billing

Revision ID: 4f2a9c1e7b30
Revises:
Create Date: 2026-10-18 09:12:44.104215

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f2a9c1e7b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Create tenants table
    op.create_table(
        'tenants',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('organization_id', sa.String(length=128), nullable=True),
        sa.Column('creator_id', sa.String(length=128), nullable=True),
        sa.Column('billing_owner_id', sa.String(length=128), nullable=False),
        sa.Column('phone_number', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index(op.f('ix_tenants_organization_id'), 'tenants', ['organization_id'], unique=False)
    op.create_index(op.f('ix_tenants_creator_id'), 'tenants', ['creator_id'], unique=False)
    op.create_index('idx_tenant_billing_owner_role', 'tenants', ['billing_owner_id', 'role'], unique=False)

    # Create organizations table
    op.create_table(
        'organizations',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('parent_organization_id', sa.String(length=128), nullable=True),
        sa.Column('owner_id', sa.String(length=128), nullable=True),
        sa.Column('billing_owner_id', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_organizations_parent_organization_id'), 'organizations', ['parent_organization_id'], unique=False)
    op.create_index(op.f('ix_organizations_owner_id'), 'organizations', ['owner_id'], unique=False)
    op.create_index(op.f('ix_organizations_billing_owner_id'), 'organizations', ['billing_owner_id'], unique=False)

    # Create parent_student_links table
    op.create_table(
        'parent_student_links',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('parent_id', sa.String(length=128), nullable=False),
        sa.Column('student_id', sa.String(length=128), nullable=False),
        sa.Column('billing_owner_id', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('parent_id', 'student_id', name='uq_parent_student')
    )
    op.create_index(op.f('ix_parent_student_links_parent_id'), 'parent_student_links', ['parent_id'], unique=False)
    op.create_index(op.f('ix_parent_student_links_student_id'), 'parent_student_links', ['student_id'], unique=False)
    op.create_index(op.f('ix_parent_student_links_billing_owner_id'), 'parent_student_links', ['billing_owner_id'], unique=False)

    # Create subscriptions table (one row per billing owner)
    op.create_table(
        'subscriptions',
        sa.Column('billing_owner_id', sa.String(length=128), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('package_id', sa.String(length=50), nullable=False),
        sa.Column('limits', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('billing_owner_id'),
        sa.UniqueConstraint('stripe_subscription_id')
    )
    op.create_index(op.f('ix_subscriptions_status'), 'subscriptions', ['status'], unique=False)
    op.create_index(op.f('ix_subscriptions_stripe_customer_id'), 'subscriptions', ['stripe_customer_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_subscriptions_stripe_customer_id'), table_name='subscriptions')
    op.drop_index(op.f('ix_subscriptions_status'), table_name='subscriptions')
    op.drop_table('subscriptions')

    op.drop_index(op.f('ix_parent_student_links_billing_owner_id'), table_name='parent_student_links')
    op.drop_index(op.f('ix_parent_student_links_student_id'), table_name='parent_student_links')
    op.drop_index(op.f('ix_parent_student_links_parent_id'), table_name='parent_student_links')
    op.drop_table('parent_student_links')

    op.drop_index(op.f('ix_organizations_billing_owner_id'), table_name='organizations')
    op.drop_index(op.f('ix_organizations_owner_id'), table_name='organizations')
    op.drop_index(op.f('ix_organizations_parent_organization_id'), table_name='organizations')
    op.drop_table('organizations')

    op.drop_index('idx_tenant_billing_owner_role', table_name='tenants')
    op.drop_index(op.f('ix_tenants_creator_id'), table_name='tenants')
    op.drop_index(op.f('ix_tenants_organization_id'), table_name='tenants')
    op.drop_table('tenants')
