# Database Models for the Engagement Escrow Service

from sqlalchemy import Column, String, Integer, BigInteger, DateTime, Text, JSON, Enum, Boolean
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from sqlalchemy.types import TypeDecorator
import uuid
import enum

Base = declarative_base()

def generate_uuid():
    return str(uuid.uuid4())


class BigAmount(TypeDecorator):
    """Non-negative integer of arbitrary size, stored as a decimal string.

    Amounts and 10^18-scaled metrics overflow BIGINT, so they are kept as
    text and converted back to ``int`` on load.
    """
    impl = String(80)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(int(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


# Enums
class ContractStatusDB(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    REJECTED = "rejected"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset({
    ContractStatusDB.COMPLETED,
    ContractStatusDB.REFUNDED,
    ContractStatusDB.REJECTED,
    ContractStatusDB.EXPIRED,
})


class EventTypeDB(str, enum.Enum):
    CONTRACT_CREATED = "contract_created"
    FUNDS_DEPOSITED = "funds_deposited"
    PAYMENT_RELEASED = "payment_released"
    PAYMENT_REFUNDED = "payment_refunded"
    CONTRACT_ACCEPTED = "contract_accepted"
    CONTRACT_REJECTED = "contract_rejected"
    CONTRACT_EXPIRED = "contract_expired"
    VERIFICATION_REQUESTED = "verification_requested"
    VERIFICATION_FULFILLED = "verification_fulfilled"
    VERIFICATION_CANCELLED = "verification_cancelled"


def _enum_values(x):
    return [e.value for e in x]


# Models
class EscrowContract(Base):
    """One escrow per offer id, funded by the brand at creation."""
    __tablename__ = "escrow_contracts"

    offer_id = Column(String(128), primary_key=True)
    brand = Column(String(128), nullable=False, index=True)
    influencer = Column(String(128), nullable=False, index=True)

    amount = Column(BigAmount, nullable=False, default=0)
    minimum_engagement = Column(BigAmount, nullable=False, default=0)  # Scaled by 10^18

    # Epoch seconds, 0 until set
    created_at = Column(BigInteger, nullable=False, default=0)
    accepted_at = Column(BigInteger, nullable=False, default=0)
    expired_at = Column(BigInteger, nullable=False, default=0)
    duration = Column(BigInteger, nullable=False, default=0)

    funds_deposited = Column(Boolean, nullable=False, default=False)
    status = Column(
        Enum(ContractStatusDB, values_callable=_enum_values, name="contractstatusdb"),
        nullable=False,
        default=ContractStatusDB.PENDING,
        index=True
    )

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def verification_due_at(self) -> int:
        return self.accepted_at + self.duration

    def __repr__(self):
        return f"<EscrowContract {self.offer_id} {self.status.value}>"


class OracleRequest(Base):
    """Correlation from an oracle request handle to the offer that issued it."""
    __tablename__ = "oracle_requests"

    request_id = Column(String(64), primary_key=True, default=generate_uuid)
    offer_id = Column(String(128), nullable=False, index=True)
    fee = Column(BigAmount, nullable=False, default=0)
    created_at = Column(BigInteger, nullable=False, default=0)


class ContractEvent(Base):
    """Append-only notification stream. Not authoritative state."""
    __tablename__ = "contract_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    offer_id = Column(String(128), nullable=False, index=True)
    event_type = Column(
        Enum(EventTypeDB, values_callable=_enum_values, name="eventtypedb"),
        nullable=False
    )
    data = Column(JSON, default=dict)
    message = Column(Text)
    created_at = Column(BigInteger, nullable=False, default=0)
