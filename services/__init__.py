# Services Module for the Engagement Escrow
# Contains business logic services

from services.escrow_service import (
    EscrowService,
    get_escrow_service,
    get_oracle_client,
    get_payout_transfer,
)
from services.escrow_store import EscrowStore
from services.event_log import EventLog
from services.funds_custodian import FundsCustodian
from services.oracle_router import OracleRequestRouter

__all__ = [
    'EscrowService',
    'EscrowStore',
    'EventLog',
    'FundsCustodian',
    'OracleRequestRouter',
    'get_escrow_service',
    'get_oracle_client',
    'get_payout_transfer',
]
