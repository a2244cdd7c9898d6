"""add open banking tables

Revision ID: 3c1e9a7d5b20
Revises:
Create Date: 2026-10-18 10:12:04.118392

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1e9a7d5b20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('open_banking_customers',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('platform_client_id', sa.String(), nullable=False),
    sa.Column('aggregator_customer_id', sa.String(), nullable=False),
    sa.Column('status', sa.String(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_open_banking_customers_platform_client_id'), 'open_banking_customers', ['platform_client_id'], unique=True)
    op.create_index(op.f('ix_open_banking_customers_aggregator_customer_id'), 'open_banking_customers', ['aggregator_customer_id'], unique=True)

    op.create_table('open_banking_webhook_events',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('message_id', sa.String(), nullable=False),
    sa.Column('event_type', sa.String(), nullable=False),
    sa.Column('aggregator_customer_id', sa.String(), nullable=True),
    sa.Column('raw_headers', sa.Text(), nullable=False),
    sa.Column('raw_payload', sa.Text(), nullable=False),
    sa.Column('verified', sa.Boolean(), nullable=False),
    sa.Column('processed_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_open_banking_webhook_events_message_id'), 'open_banking_webhook_events', ['message_id'], unique=True)
    op.create_index(op.f('ix_open_banking_webhook_events_aggregator_customer_id'), 'open_banking_webhook_events', ['aggregator_customer_id'], unique=False)

    op.create_table('open_banking_accounts',
    sa.Column('id', sa.String(), nullable=False),
    sa.Column('aggregator_customer_id', sa.String(), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('type', sa.String(), nullable=False),
    sa.Column('balance', sa.Numeric(precision=18, scale=2), nullable=False),
    sa.Column('currency', sa.String(length=3), nullable=False),
    sa.Column('status', sa.String(), nullable=False),
    sa.Column('institution_id', sa.String(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('last_updated_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_open_banking_accounts_aggregator_customer_id'), 'open_banking_accounts', ['aggregator_customer_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_open_banking_accounts_aggregator_customer_id'), table_name='open_banking_accounts')
    op.drop_table('open_banking_accounts')
    op.drop_index(op.f('ix_open_banking_webhook_events_aggregator_customer_id'), table_name='open_banking_webhook_events')
    op.drop_index(op.f('ix_open_banking_webhook_events_message_id'), table_name='open_banking_webhook_events')
    op.drop_table('open_banking_webhook_events')
    op.drop_index(op.f('ix_open_banking_customers_aggregator_customer_id'), table_name='open_banking_customers')
    op.drop_index(op.f('ix_open_banking_customers_platform_client_id'), table_name='open_banking_customers')
    op.drop_table('open_banking_customers')
