"""Initial billing schema: balances, billing profiles, invoices, items, settings, activity log

Revision ID: a3f19c2e7b41
Revises: 
Create Date: 2026-03-01 09:00:12.418330

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a3f19c2e7b41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the billing tables next to the panel's users table."""
    bind = op.get_bind()

    # The host panel owns users; only create it for standalone installs
    if not sa.inspect(bind).has_table('users'):
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('uuid', sa.String(length=36), nullable=False),
            sa.Column('username', sa.String(length=191), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('first_seen', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_uuid'), 'users', ['uuid'], unique=True)
        op.create_index(op.f('ix_users_username'), 'users', ['username'])
        op.create_index(op.f('ix_users_email'), 'users', ['email'])

    # 1. Balances (one row per user)
    op.create_table(
        'billing_balances',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('credits', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('credits >= 0', name='ck_billing_balances_credits_non_negative'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    # 2. Billing profiles (one row per user)
    op.create_table(
        'billing_user_info',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('address_line1', sa.String(length=255), nullable=False),
        sa.Column('address_line2', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=191), nullable=False),
        sa.Column('state', sa.String(length=191), nullable=True),
        sa.Column('postal_code', sa.String(length=32), nullable=False),
        sa.Column('country_code', sa.String(length=2), nullable=False),
        sa.Column('vat_id', sa.String(length=64), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    # 3. Invoices (depends on users)
    invoice_status = sa.Enum('draft', 'pending', 'paid', 'overdue', 'cancelled', name='invoicestatus')
    op.create_table(
        'billing_invoices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('status', invoice_status, nullable=False, server_default='draft'),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('subtotal', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('tax_rate', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('tax_amount', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('currency_code', sa.String(length=3), nullable=False, server_default='EUR'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_billing_invoices_user_id'), 'billing_invoices', ['user_id'])
    op.create_index(op.f('ix_billing_invoices_invoice_number'), 'billing_invoices', ['invoice_number'], unique=True)
    op.create_index(op.f('ix_billing_invoices_status'), 'billing_invoices', ['status'])
    op.create_index(op.f('ix_billing_invoices_due_date'), 'billing_invoices', ['due_date'])
    # Admin list filters by status and orders by newest first
    op.create_index('ix_billing_invoices_status_created', 'billing_invoices', ['status', 'created_at'])

    # 4. Invoice items (depends on invoices)
    op.create_table(
        'billing_invoice_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=10, scale=2), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['invoice_id'], ['billing_invoices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_billing_invoice_items_invoice_id'), 'billing_invoice_items', ['invoice_id'])
    op.create_index(op.f('ix_billing_invoice_items_sort_order'), 'billing_invoice_items', ['sort_order'])

    # 5. Settings (key/value, no dependencies)
    op.create_table(
        'billing_settings',
        sa.Column('key', sa.String(length=191), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )

    # 6. Activity log (no foreign keys, survives user deletion)
    op.create_table(
        'activity_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('user_uuid', sa.String(length=36), nullable=True),
        sa.Column('name', sa.String(length=191), nullable=False),
        sa.Column('context', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_activity_log_user_uuid'), 'activity_log', ['user_uuid'])
    op.create_index(op.f('ix_activity_log_name'), 'activity_log', ['name'])


def downgrade() -> None:
    """Drop the billing tables; the panel's users table is left alone."""
    op.drop_index(op.f('ix_activity_log_name'), table_name='activity_log')
    op.drop_index(op.f('ix_activity_log_user_uuid'), table_name='activity_log')
    op.drop_table('activity_log')

    op.drop_table('billing_settings')

    op.drop_index(op.f('ix_billing_invoice_items_sort_order'), table_name='billing_invoice_items')
    op.drop_index(op.f('ix_billing_invoice_items_invoice_id'), table_name='billing_invoice_items')
    op.drop_table('billing_invoice_items')

    op.drop_index('ix_billing_invoices_status_created', table_name='billing_invoices')
    op.drop_index(op.f('ix_billing_invoices_due_date'), table_name='billing_invoices')
    op.drop_index(op.f('ix_billing_invoices_status'), table_name='billing_invoices')
    op.drop_index(op.f('ix_billing_invoices_invoice_number'), table_name='billing_invoices')
    op.drop_index(op.f('ix_billing_invoices_user_id'), table_name='billing_invoices')
    op.drop_table('billing_invoices')
    sa.Enum(name='invoicestatus').drop(op.get_bind(), checkfirst=True)

    op.drop_table('billing_user_info')
    op.drop_table('billing_balances')
