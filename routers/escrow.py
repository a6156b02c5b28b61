# Escrow Router for the Engagement Escrow
# Handles the contract lifecycle between brands and influencers

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from auth.dependencies import Principal, get_current_principal
from database.models import ContractStatusDB
from schemas.escrow import (
    ContractStatus,
    EscrowCreate,
    EscrowResponse,
    EventResponse,
    VerificationRequestResponse,
)
from services.escrow_service import EscrowService, get_escrow_service

router = APIRouter(prefix="/escrow", tags=["Escrow"])


# ============================================================================
# BRAND ENDPOINTS
# ============================================================================

@router.post("", response_model=EscrowResponse, status_code=status.HTTP_201_CREATED)
def create_escrow(
    escrow_data: EscrowCreate,
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal)
):
    """
    Create an escrow and deposit its amount.
    The caller becomes the brand; `value` must equal `amount` exactly.
    """
    return service.create_and_deposit(
        offer_id=escrow_data.offer_id,
        brand=current.address,
        influencer=escrow_data.influencer,
        amount=escrow_data.amount,
        minimum_engagement=escrow_data.minimum_engagement,
        expired_at=escrow_data.expired_at,
        duration=escrow_data.duration_seconds,
        tendered=escrow_data.value,
    )


# ============================================================================
# READ ENDPOINTS
# ============================================================================

@router.get("", response_model=List[EscrowResponse])
async def list_escrows(
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal),
    status_filter: Optional[ContractStatus] = Query(None, alias="status"),
    mine: bool = Query(False, description="Only offers where the caller is a party"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """List escrow contracts."""
    return service.store.list(
        status=ContractStatusDB(status_filter.value) if status_filter else None,
        party=current.address if mine else None,
        limit=limit,
        offset=(page - 1) * limit,
    )


@router.get("/{offer_id}", response_model=EscrowResponse)
async def get_escrow(
    offer_id: str,
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal)
):
    return service.get(offer_id)


@router.get("/{offer_id}/events", response_model=List[EventResponse])
async def get_escrow_events(
    offer_id: str,
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    """Notification stream for one offer, oldest first."""
    service.get(offer_id)
    return service.events.list(offer_id=offer_id, limit=limit, offset=(page - 1) * limit)


# ============================================================================
# INFLUENCER ENDPOINTS
# ============================================================================

@router.post("/{offer_id}/accept", response_model=EscrowResponse)
def accept_escrow(
    offer_id: str,
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal)
):
    return service.accept(offer_id, current.address)


@router.post("/{offer_id}/reject", response_model=EscrowResponse)
def reject_escrow(
    offer_id: str,
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal)
):
    """Reject the offer. The brand is refunded."""
    return service.reject(offer_id, current.address)


# ============================================================================
# PERMISSIONLESS ENDPOINTS
# ============================================================================

@router.post("/{offer_id}/check-expired", response_model=EscrowResponse)
def check_expired(
    offer_id: str,
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal)
):
    """Expire a pending offer past its deadline. The brand is refunded."""
    return service.check_expired(offer_id)


@router.post(
    "/{offer_id}/request-verification",
    response_model=VerificationRequestResponse,
    status_code=status.HTTP_202_ACCEPTED
)
def request_verification(
    offer_id: str,
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal)
):
    """
    Ask the oracle for the offer's engagement.
    The outcome arrives later through the oracle callback.
    """
    request = service.request_verification(offer_id)
    return VerificationRequestResponse(
        request_id=request["id"],
        offer_id=offer_id,
        job_id=request["job_id"],
        times=request["data"]["times"],
        fee=request["fee"],
    )
