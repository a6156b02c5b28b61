# Oracle Request Router
# Issues engagement verification requests and routes the asynchronous
# responses back to the offer that asked for them.

from sqlalchemy.orm import Session
from typing import Callable, Dict, Any, Iterable, List, Optional
import logging

from config.app_config import (
    ENGAGEMENT_SCALE,
    ORACLE_CALLBACK_URL,
    ORACLE_ENGAGEMENT_PATH,
    ORACLE_ENGAGEMENT_URL,
    ORACLE_FEE,
    ORACLE_JOB_ID,
    TRUSTED_ORACLES,
)
from database.models import OracleRequest, generate_uuid
from core.errors import NotOracle, OracleUnavailable
from core.oracle_client import OracleClient, OracleClientError

logger = logging.getLogger(__name__)


class OracleRequestRouter:
    """
    Correlates oracle request handles with offers.

    A correlation row is written when a request is submitted and deleted
    when its response is consumed, so a handle resolves at most once.
    There is no response timeout: an unanswered request leaves the offer
    active until someone requests verification again.
    """

    def __init__(
        self,
        db: Session,
        clock,
        custodian,
        client: Optional[OracleClient] = None,
        trusted_oracles: Optional[Iterable[str]] = None,
        fee: int = ORACLE_FEE,
        job_id: str = ORACLE_JOB_ID,
    ):
        self.db = db
        self.clock = clock
        self.custodian = custodian
        self.client = client or OracleClient()
        self.trusted_oracles = frozenset(TRUSTED_ORACLES if trusted_oracles is None else trusted_oracles)
        self.fee = fee
        self.job_id = job_id

    def build_request(self, offer_id: str, request_id: str) -> Dict[str, Any]:
        """The fixed verification request for an offer."""
        return {
            "id": request_id,
            "job_id": self.job_id,
            "fee": str(self.fee),
            "callback_url": ORACLE_CALLBACK_URL,
            "data": {
                "get": ORACLE_ENGAGEMENT_URL,
                "path": ORACLE_ENGAGEMENT_PATH,
                "times": str(ENGAGEMENT_SCALE),
                "offer_id": offer_id,
            },
        }

    def submit(self, offer_id: str) -> Dict[str, Any]:
        """
        Charge the fee and store the correlation for a new request.

        Runs inside the caller's transaction. The request is not sent until
        ``dispatch`` is called after commit.
        """
        request_id = generate_uuid()
        self.custodian.charge_fee(offer_id, self.fee)
        self.db.add(OracleRequest(
            request_id=request_id,
            offer_id=offer_id,
            fee=self.fee,
            created_at=self.clock.now(),
        ))
        self.db.flush()
        return self.build_request(offer_id, request_id)

    def dispatch(self, request: Dict[str, Any], on_failure: Callable[[str], None]) -> Dict[str, Any]:
        """Send a committed request; ``on_failure(request_id)`` undoes it if the node refuses."""
        try:
            ack = self.client.send_request(request)
        except OracleClientError as e:
            on_failure(request["id"])
            raise OracleUnavailable(str(e)) from e
        logger.info(f"[{request['data']['offer_id']}] verification request {request['id']} sent")
        return ack

    def cancel(self, request_id: str) -> Optional[OracleRequest]:
        """Drop an undelivered request and return its fee to the vault."""
        correlation = self.consume(request_id)
        if correlation is not None:
            self.custodian.refund_fee(correlation.offer_id, correlation.fee)
        return correlation

    def check_oracle(self, caller: str) -> None:
        if caller not in self.trusted_oracles:
            raise NotOracle(f"{caller} is not a trusted oracle")

    def lookup(self, request_id: str) -> Optional[OracleRequest]:
        return self.db.query(OracleRequest).filter(OracleRequest.request_id == request_id).first()

    def consume(self, request_id: str) -> Optional[OracleRequest]:
        """Delete and return the correlation, or None if already consumed."""
        correlation = self.db.query(OracleRequest).filter(
            OracleRequest.request_id == request_id
        ).with_for_update().populate_existing().first()
        if correlation is None:
            return None
        self.db.delete(correlation)
        self.db.flush()
        return correlation

    def on_response(self, request_id: str, metric: int, caller: str, fulfill: Callable[[str, str, int], Any]):
        """
        Route an oracle response to ``fulfill(offer_id, request_id, metric)``.

        Unknown handles are logged and ignored; returns None in that case.
        """
        self.check_oracle(caller)
        correlation = self.lookup(request_id)
        if correlation is None:
            logger.warning(f"Ignoring oracle response for unknown request {request_id} from {caller}")
            return None
        return fulfill(correlation.offer_id, request_id, metric)

    def outstanding(self, offer_id: str) -> List[OracleRequest]:
        return self.db.query(OracleRequest).filter(
            OracleRequest.offer_id == offer_id
        ).order_by(OracleRequest.created_at).all()
