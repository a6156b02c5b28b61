# Pydantic Schemas for the Engagement Escrow API

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from enum import Enum


# ============================================================================
# ENUMS
# ============================================================================

class ContractStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    REJECTED = "rejected"
    EXPIRED = "expired"


class EventType(str, Enum):
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


class TransactionType(str, Enum):
    ESCROW_LOCK = "escrow_lock"
    ESCROW_RELEASE = "escrow_release"
    ESCROW_REFUND = "escrow_refund"
    FEE_DEPOSIT = "fee_deposit"
    ORACLE_FEE = "oracle_fee"
    ORACLE_FEE_REFUND = "oracle_fee_refund"
    FEE_SWEEP = "fee_sweep"


# ============================================================================
# ESCROW SCHEMAS
# ============================================================================

class EscrowCreate(BaseModel):
    """Schema for creating and funding an escrow. The caller is the brand."""
    offer_id: str = Field(..., min_length=1, max_length=128)
    influencer: str = Field(..., min_length=1, max_length=128)
    amount: int = Field(..., ge=0)
    minimum_engagement: int = Field(..., ge=0)  # Scaled by 10^18
    expired_at: int = Field(..., ge=0)  # Epoch seconds
    duration_seconds: int = Field(..., ge=0)
    value: int = Field(..., ge=0)  # Value tendered with the call

    @validator('influencer')
    def influencer_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Influencer address cannot be blank')
        return v


class EscrowResponse(BaseModel):
    """Schema for escrow contract response."""
    offer_id: str
    brand: str
    influencer: str
    amount: int
    minimum_engagement: int
    created_at: int
    accepted_at: int
    expired_at: int
    duration: int
    funds_deposited: bool
    status: ContractStatus
    is_terminal: bool

    class Config:
        from_attributes = True


class VerificationRequestResponse(BaseModel):
    """Schema for an issued verification request."""
    request_id: str
    offer_id: str
    job_id: str
    times: str
    fee: str


# ============================================================================
# ORACLE SCHEMAS
# ============================================================================

class OracleFulfill(BaseModel):
    """Oracle callback payload."""
    request_id: str = Field(..., min_length=1, max_length=64)
    metric: int = Field(..., ge=0)  # Engagement scaled by 10^18


class OracleFulfillResponse(BaseModel):
    status: str  # settled, ignored
    offer_id: Optional[str] = None
    contract_status: Optional[ContractStatus] = None


# ============================================================================
# EVENT SCHEMAS
# ============================================================================

class EventResponse(BaseModel):
    """Schema for a contract event."""
    id: int
    offer_id: str
    event_type: EventType
    message: Optional[str] = None
    data: Dict[str, Any] = {}
    created_at: int

    class Config:
        from_attributes = True


# ============================================================================
# WALLET SCHEMAS
# ============================================================================

class TransactionResponse(BaseModel):
    """Schema for ledger rows."""
    id: str
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    offer_id: Optional[str] = None
    amount: int
    transaction_type: TransactionType
    description: Optional[str] = None
    created_at: int

    class Config:
        from_attributes = True


class WalletResponse(BaseModel):
    """Schema for wallet response."""
    address: str
    balance: int
    total_received: int
    transactions: List[TransactionResponse] = []


# ============================================================================
# FEE VAULT SCHEMAS
# ============================================================================

class FeeDepositRequest(BaseModel):
    amount: int = Field(..., ge=1)


class FeeSweepRequest(BaseModel):
    to: str = Field(..., min_length=1, max_length=128)


class FeeVaultResponse(BaseModel):
    address: str
    balance: int
    swept: Optional[int] = None
