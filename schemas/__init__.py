# Schemas module for the Escrow API
# Organizes all Pydantic schemas in a modular structure

from schemas.escrow import (
    # Enums
    ContractStatus,
    EventType,
    TransactionType,

    # Escrow schemas
    EscrowCreate,
    EscrowResponse,
    VerificationRequestResponse,

    # Oracle schemas
    OracleFulfill,
    OracleFulfillResponse,

    # Event schemas
    EventResponse,

    # Wallet schemas
    TransactionResponse,
    WalletResponse,

    # Fee vault schemas
    FeeDepositRequest,
    FeeSweepRequest,
    FeeVaultResponse,
)

__all__ = [
    # Enums
    "ContractStatus",
    "EventType",
    "TransactionType",

    # Escrow
    "EscrowCreate",
    "EscrowResponse",
    "VerificationRequestResponse",

    # Oracle
    "OracleFulfill",
    "OracleFulfillResponse",

    # Events
    "EventResponse",

    # Wallet
    "TransactionResponse",
    "WalletResponse",

    # Fee vault
    "FeeDepositRequest",
    "FeeSweepRequest",
    "FeeVaultResponse",
]
