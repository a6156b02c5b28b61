# Oracle Router for the Engagement Escrow
# Inbound callback for verification responses

from fastapi import APIRouter, Depends

from auth.dependencies import Principal, get_current_principal
from schemas.escrow import OracleFulfill, OracleFulfillResponse
from services.escrow_service import EscrowService, get_escrow_service

router = APIRouter(prefix="/oracle", tags=["Oracle"])


@router.post("/fulfill", response_model=OracleFulfillResponse)
def fulfill(
    payload: OracleFulfill,
    service: EscrowService = Depends(get_escrow_service),
    current: Principal = Depends(get_current_principal)
):
    """
    Deliver the engagement metric for a request.
    Only trusted oracles may call this. Unknown requests and contracts that
    already settled are acknowledged without effect.
    """
    contract = service.handle_oracle_response(payload.request_id, payload.metric, current.address)
    if contract is None:
        return OracleFulfillResponse(status="ignored")
    return OracleFulfillResponse(
        status="settled",
        offer_id=contract.offer_id,
        contract_status=contract.status,
    )
