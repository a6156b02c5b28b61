# Wallet Router for the Engagement Escrow
# Balances credited by payouts and the movement ledger

from fastapi import APIRouter, Depends, Query

from auth.dependencies import Principal, get_current_principal
from schemas.escrow import WalletResponse
from services.escrow_service import EscrowService, get_escrow_service

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("", response_model=WalletResponse)
async def get_wallet(
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """
    Get current principal's balance and transaction history.
    """
    custodian = service.custodian
    return WalletResponse(
        address=current.address,
        balance=custodian.balance_of(current.address),
        total_received=custodian.total_received(current.address),
        transactions=custodian.wallet_transactions(current.address, limit=limit, offset=(page - 1) * limit),
    )
