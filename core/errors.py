# Escrow Domain Errors
# Raised by the services layer; server.py maps them to JSON responses.

from fastapi import status


class EscrowError(Exception):
    """Base class for all escrow domain errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "escrow_error"

    def __init__(self, detail: str = ""):
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code}


# ============================================================================
# AUTHORIZATION
# ============================================================================

class AuthorizationError(EscrowError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "unauthorized"


class OnlyInfluencer(AuthorizationError):
    """Only the influencer of this offer can perform this action."""
    code = "only_influencer"


class NotOracle(AuthorizationError):
    """Caller is not a trusted oracle."""
    code = "not_oracle"


class NotOwner(AuthorizationError):
    """Caller does not hold the owner capability."""
    code = "not_owner"


# ============================================================================
# PRECONDITION
# ============================================================================

class PreconditionError(EscrowError):
    status_code = status.HTTP_409_CONFLICT
    code = "precondition_failed"


class ContractNotFound(PreconditionError):
    """Escrow contract not found."""
    status_code = status.HTTP_404_NOT_FOUND
    code = "contract_not_found"


class ContractNotPending(PreconditionError):
    """Contract is not pending."""
    code = "contract_not_pending"


class ContractNotActive(PreconditionError):
    """Contract is not active."""
    code = "contract_not_active"


class ContractNotExpired(PreconditionError):
    """Contract has not expired yet."""
    code = "contract_not_expired"


class DurationNotPassed(PreconditionError):
    """Campaign duration has not passed yet."""
    code = "duration_not_passed"


class InsufficientFeeBalance(PreconditionError):
    """Fee vault cannot cover the oracle fee."""
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    code = "insufficient_fee_balance"


# ============================================================================
# VALIDATION
# ============================================================================

class ValidationError(EscrowError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_failed"


class IncorrectAmountSent(ValidationError):
    """Tendered value does not match the declared amount."""
    code = "incorrect_amount_sent"


class InvalidAmount(ValidationError):
    """Amount must be greater than zero."""
    code = "invalid_amount"


class InvalidParty(ValidationError):
    """Brand and influencer must be different principals."""
    code = "invalid_party"


class AlreadyExists(ValidationError):
    """An escrow with this offer id already exists."""
    status_code = status.HTTP_409_CONFLICT
    code = "already_exists"


# ============================================================================
# EXTERNAL
# ============================================================================

class ExternalError(EscrowError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "external_error"


class PayoutFailed(ExternalError):
    """Payout could not be delivered."""
    code = "payout_failed"


class OracleUnavailable(ExternalError):
    """Verification request could not be sent to the oracle."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "oracle_unavailable"
