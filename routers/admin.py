# Admin Router for the Engagement Escrow
# Oracle fee vault: top-ups and owner sweeps

from fastapi import APIRouter, Depends

from auth.capabilities import OwnerCapability, get_owner_capability
from auth.dependencies import Principal, get_current_principal
from config.app_config import FEE_VAULT_ADDRESS
from schemas.escrow import FeeDepositRequest, FeeSweepRequest, FeeVaultResponse
from services.escrow_service import EscrowService, get_escrow_service

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/fees", response_model=FeeVaultResponse)
async def get_fee_vault(
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal)
):
    return FeeVaultResponse(address=FEE_VAULT_ADDRESS, balance=service.fee_balance())


@router.post("/fees/deposit", response_model=FeeVaultResponse)
def deposit_fees(
    deposit: FeeDepositRequest,
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal)
):
    """Top up the balance that pays for oracle requests."""
    balance = service.deposit_fees(current.address, deposit.amount)
    return FeeVaultResponse(address=FEE_VAULT_ADDRESS, balance=balance)


@router.post("/fees/sweep", response_model=FeeVaultResponse)
def sweep_fees(
    sweep: FeeSweepRequest,
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal),
    owner: OwnerCapability = Depends(get_owner_capability)
):
    """Owner only. Moves the whole fee vault balance to `to`."""
    swept = service.sweep_fees(current.address, sweep.to, owner)
    return FeeVaultResponse(address=FEE_VAULT_ADDRESS, balance=service.fee_balance(), swept=swept)
