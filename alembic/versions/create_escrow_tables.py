"""create escrow, correlation, event and custody tables

Revision ID: create_escrow_tables
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'create_escrow_tables'
down_revision = None
branch_labels = None
depends_on = None

CONTRACT_STATUSES = ('pending', 'active', 'completed', 'refunded', 'rejected', 'expired')
EVENT_TYPES = (
    'contract_created', 'funds_deposited', 'payment_released', 'payment_refunded',
    'contract_accepted', 'contract_rejected', 'contract_expired',
    'verification_requested', 'verification_fulfilled', 'verification_cancelled',
)
TRANSACTION_TYPES = (
    'escrow_lock', 'escrow_release', 'escrow_refund',
    'fee_deposit', 'oracle_fee', 'oracle_fee_refund', 'fee_sweep',
)
HOLD_STATUSES = ('locked', 'released', 'refunded')


def upgrade():
    op.create_table(
        'escrow_contracts',
        sa.Column('offer_id', sa.String(128), primary_key=True),
        sa.Column('brand', sa.String(128), nullable=False),
        sa.Column('influencer', sa.String(128), nullable=False),
        sa.Column('amount', sa.String(80), nullable=False),
        sa.Column('minimum_engagement', sa.String(80), nullable=False),
        sa.Column('created_at', sa.BigInteger, nullable=False),
        sa.Column('accepted_at', sa.BigInteger, nullable=False),
        sa.Column('expired_at', sa.BigInteger, nullable=False),
        sa.Column('duration', sa.BigInteger, nullable=False),
        sa.Column('funds_deposited', sa.Boolean, nullable=False),
        sa.Column('status', sa.Enum(*CONTRACT_STATUSES, name='contractstatusdb'), nullable=False),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_escrow_contracts_brand', 'escrow_contracts', ['brand'])
    op.create_index('ix_escrow_contracts_influencer', 'escrow_contracts', ['influencer'])
    op.create_index('ix_escrow_contracts_status', 'escrow_contracts', ['status'])

    op.create_table(
        'oracle_requests',
        sa.Column('request_id', sa.String(64), primary_key=True),
        sa.Column('offer_id', sa.String(128), nullable=False),
        sa.Column('fee', sa.String(80), nullable=False),
        sa.Column('created_at', sa.BigInteger, nullable=False),
    )
    op.create_index('ix_oracle_requests_offer_id', 'oracle_requests', ['offer_id'])

    op.create_table(
        'contract_events',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('offer_id', sa.String(128), nullable=False),
        sa.Column('event_type', sa.Enum(*EVENT_TYPES, name='eventtypedb'), nullable=False),
        sa.Column('data', sa.JSON),
        sa.Column('message', sa.Text),
        sa.Column('created_at', sa.BigInteger, nullable=False),
    )
    op.create_index('ix_contract_events_offer_id', 'contract_events', ['offer_id'])

    op.create_table(
        'wallet_transactions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('from_address', sa.String(128), nullable=True),
        sa.Column('to_address', sa.String(128), nullable=True),
        sa.Column('offer_id', sa.String(128), nullable=True),
        sa.Column('amount', sa.String(80), nullable=False),
        sa.Column('transaction_type', sa.Enum(*TRANSACTION_TYPES, name='wallettransactiontypedb'), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('created_at', sa.BigInteger, nullable=False),
    )
    op.create_index('ix_wallet_transactions_from_address', 'wallet_transactions', ['from_address'])
    op.create_index('ix_wallet_transactions_to_address', 'wallet_transactions', ['to_address'])
    op.create_index('ix_wallet_transactions_offer_id', 'wallet_transactions', ['offer_id'])

    op.create_table(
        'escrow_holds',
        sa.Column('offer_id', sa.String(128), primary_key=True),
        sa.Column('depositor', sa.String(128), nullable=False),
        sa.Column('amount', sa.String(80), nullable=False),
        sa.Column('status', sa.Enum(*HOLD_STATUSES, name='escrowstatusdb'), nullable=False),
        sa.Column('recipient', sa.String(128), nullable=True),
        sa.Column('locked_at', sa.BigInteger, nullable=False),
        sa.Column('released_at', sa.BigInteger, nullable=True),
    )


def downgrade():
    op.drop_table('escrow_holds')
    op.drop_index('ix_wallet_transactions_offer_id', table_name='wallet_transactions')
    op.drop_index('ix_wallet_transactions_to_address', table_name='wallet_transactions')
    op.drop_index('ix_wallet_transactions_from_address', table_name='wallet_transactions')
    op.drop_table('wallet_transactions')
    op.drop_index('ix_contract_events_offer_id', table_name='contract_events')
    op.drop_table('contract_events')
    op.drop_index('ix_oracle_requests_offer_id', table_name='oracle_requests')
    op.drop_table('oracle_requests')
    op.drop_index('ix_escrow_contracts_status', table_name='escrow_contracts')
    op.drop_index('ix_escrow_contracts_influencer', table_name='escrow_contracts')
    op.drop_index('ix_escrow_contracts_brand', table_name='escrow_contracts')
    op.drop_table('escrow_contracts')

    bind = op.get_bind()
    for name in ('escrowstatusdb', 'wallettransactiontypedb', 'eventtypedb', 'contractstatusdb'):
        sa.Enum(name=name).drop(bind, checkfirst=True)
