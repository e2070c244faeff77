"""Create invoices table

Revision ID: 20241001_000001
Revises: None
Create Date: 2024-10-01

This migration creates the invoices table, including the recurrence
columns read by the daily recurring invoice scan.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20241001_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the invoices table."""
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('project_id', sa.String(36), nullable=True),
        sa.Column('invoice_number', sa.String(50), nullable=False),
        sa.Column(
            'status',
            sa.Enum('draft', 'sent', 'paid', 'overdue', 'cancelled', name='invoice_status', create_constraint=True),
            nullable=False,
            server_default='draft'
        ),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('paid_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recurring_interval', sa.String(20), nullable=True),
        sa.Column('next_invoice_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_invoices'),
        sa.UniqueConstraint('invoice_number', name='uq_invoices_invoice_number'),
    )

    # Create indexes for common queries
    op.create_index('ix_invoices_user_id', 'invoices', ['user_id'])
    op.create_index('ix_invoices_client_id', 'invoices', ['client_id'])
    op.create_index('ix_invoices_due_date', 'invoices', ['due_date'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])
    # Serves the due-template scan: is_recurring = true AND next_invoice_date <= today
    op.create_index('ix_invoices_recurring_due', 'invoices', ['is_recurring', 'next_invoice_date'])


def downgrade() -> None:
    """Drop the invoices table."""
    op.drop_index('ix_invoices_recurring_due', table_name='invoices')
    op.drop_index('ix_invoices_status', table_name='invoices')
    op.drop_index('ix_invoices_due_date', table_name='invoices')
    op.drop_index('ix_invoices_client_id', table_name='invoices')
    op.drop_index('ix_invoices_user_id', table_name='invoices')
    op.drop_table('invoices')

    # Drop the enum type
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS invoice_status")
