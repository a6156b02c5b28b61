# Custody Models for the Engagement Escrow Service
# The movement ledger and per-offer escrow holds.
# Import these in addition to the models in database/models.py

from sqlalchemy import Column, String, BigInteger, Text, Enum
import enum

# Use the same Base from existing models
from database.models import Base, BigAmount, generate_uuid


# ============================================================================
# ENUMS
# ============================================================================

class WalletTransactionTypeDB(str, enum.Enum):
    ESCROW_LOCK = "escrow_lock"
    ESCROW_RELEASE = "escrow_release"
    ESCROW_REFUND = "escrow_refund"
    FEE_DEPOSIT = "fee_deposit"
    ORACLE_FEE = "oracle_fee"
    ORACLE_FEE_REFUND = "oracle_fee_refund"
    FEE_SWEEP = "fee_sweep"


# Movements that draw down an internal wallet. Other debits come from
# value tendered with the call and never touch a wallet balance.
INTERNAL_DEBIT_TYPES = frozenset({
    WalletTransactionTypeDB.ORACLE_FEE,
    WalletTransactionTypeDB.FEE_SWEEP,
})


class EscrowStatusDB(str, enum.Enum):
    LOCKED = "locked"
    RELEASED = "released"
    REFUNDED = "refunded"


def _enum_values(x):
    return [e.value for e in x]


# ============================================================================
# LEDGER
# ============================================================================

class WalletTransaction(Base):
    """Ledger row for every movement of value. Rows are never updated."""
    __tablename__ = "wallet_transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    from_address = Column(String(128), nullable=True, index=True)
    to_address = Column(String(128), nullable=True, index=True)
    offer_id = Column(String(128), nullable=True, index=True)

    amount = Column(BigAmount, nullable=False)
    transaction_type = Column(
        Enum(WalletTransactionTypeDB, values_callable=_enum_values, name="wallettransactiontypedb"),
        nullable=False
    )
    description = Column(Text)
    created_at = Column(BigInteger, nullable=False, default=0)


# ============================================================================
# ESCROW
# ============================================================================

class EscrowHold(Base):
    """Value held in custody for one offer."""
    __tablename__ = "escrow_holds"

    offer_id = Column(String(128), primary_key=True)
    depositor = Column(String(128), nullable=False)
    amount = Column(BigAmount, nullable=False)
    status = Column(
        Enum(EscrowStatusDB, values_callable=_enum_values, name="escrowstatusdb"),
        nullable=False,
        default=EscrowStatusDB.LOCKED
    )
    recipient = Column(String(128), nullable=True)

    locked_at = Column(BigInteger, nullable=False, default=0)
    released_at = Column(BigInteger, nullable=True)
