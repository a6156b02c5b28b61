# Escrow Service for the Engagement Escrow
# The contract lifecycle: Pending -> Active -> Completed/Refunded,
# or Pending -> Rejected/Expired.

from contextlib import contextmanager, ExitStack
from fastapi import Depends
from sqlalchemy.orm import Session
from typing import Any, Dict, Iterable, Optional
import logging

from config.app_config import FEE_VAULT_ADDRESS
from database.config import get_db
from core.clock import get_clock
from database.models import EscrowContract, ContractStatusDB, EventTypeDB
from core.errors import (
    ContractNotActive, ContractNotExpired, ContractNotPending,
    DurationNotPassed, InvalidAmount, InvalidParty, OnlyInfluencer
)
from core.locks import KeyedLocks, offer_locks
from core.oracle_client import OracleClient
from services.escrow_store import EscrowStore
from services.event_log import EventLog
from services.funds_custodian import FundsCustodian, TransferHook
from services.oracle_router import OracleRequestRouter

logger = logging.getLogger(__name__)


class EscrowService:
    """
    Drives escrow contracts through their lifecycle.

    Every transition is one unit of work against one offer: it runs under
    the offer's lock, checks preconditions on a freshly loaded row, pays out
    before the terminal status is written, and commits once. Any exception
    rolls the whole transition back.

    The offer lock only covers this process. Status writes are conditional
    on the status that was checked, so a worker process that moved the
    contract first turns the write into a precondition error.
    """

    def __init__(
        self,
        db: Session,
        clock,
        oracle_client: Optional[OracleClient] = None,
        transfer: Optional[TransferHook] = None,
        trusted_oracles: Optional[Iterable[str]] = None,
        locks: KeyedLocks = offer_locks,
        **router_options,
    ):
        self.db = db
        self.clock = clock
        self.locks = locks
        self.store = EscrowStore(db)
        self.custodian = FundsCustodian(db, clock, transfer=transfer)
        self.events = EventLog(db, clock)
        self.router = OracleRequestRouter(
            db, clock, self.custodian,
            client=oracle_client,
            trusted_oracles=trusted_oracles,
            **router_options
        )

    @contextmanager
    def _transition(self, *keys: str):
        with ExitStack() as stack:
            for key in keys:
                stack.enter_context(self.locks.hold(key))
            try:
                yield
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

    # ========================================================================
    # BRAND
    # ========================================================================

    def create_and_deposit(
        self,
        offer_id: str,
        brand: str,
        influencer: str,
        amount: int,
        minimum_engagement: int,
        expired_at: int,
        duration: int,
        tendered: int,
    ) -> EscrowContract:
        """Create the escrow and hold the brand's deposit in one step."""
        if amount <= 0:
            raise InvalidAmount()
        if not influencer or influencer == brand:
            raise InvalidParty()

        with self._transition(offer_id):
            now = self.clock.now()
            contract = self.store.create(EscrowContract(
                offer_id=offer_id,
                brand=brand,
                influencer=influencer,
                amount=amount,
                minimum_engagement=minimum_engagement,
                created_at=now,
                accepted_at=0,
                expired_at=expired_at,
                duration=duration,
                funds_deposited=False,
                status=ContractStatusDB.PENDING,
            ))
            self.custodian.hold(offer_id, brand, amount, tendered)
            contract.funds_deposited = True
            self.db.flush()

            self.events.append(offer_id, EventTypeDB.CONTRACT_CREATED, f"{brand} offered {amount} to {influencer}", {
                "brand": brand,
                "influencer": influencer,
                "amount": amount,
                "minimum_engagement": minimum_engagement,
            })
            self.events.append(offer_id, EventTypeDB.FUNDS_DEPOSITED, f"{amount} held", {
                "brand": brand,
                "amount": amount,
            })
        return contract

    # ========================================================================
    # INFLUENCER
    # ========================================================================

    def accept(self, offer_id: str, caller: str) -> EscrowContract:
        with self._transition(offer_id):
            contract = self.store.require(offer_id, for_update=True)
            self._check_influencer(contract, caller)
            self._check_pending(contract)

            self.store.advance(
                contract, ContractStatusDB.PENDING, ContractNotPending,
                status=ContractStatusDB.ACTIVE,
                accepted_at=self.clock.now(),
            )
            self.events.append(offer_id, EventTypeDB.CONTRACT_ACCEPTED, f"accepted by {caller}", {
                "influencer": caller,
                "accepted_at": contract.accepted_at,
            })
        return contract

    def reject(self, offer_id: str, caller: str) -> EscrowContract:
        with self._transition(offer_id):
            contract = self.store.require(offer_id, for_update=True)
            self._check_influencer(contract, caller)
            self._check_pending(contract)

            self._refund_brand(contract)
            self.store.advance(contract, ContractStatusDB.PENDING, ContractNotPending, status=ContractStatusDB.REJECTED)
            self.events.append(offer_id, EventTypeDB.CONTRACT_REJECTED, f"rejected by {caller}", {
                "influencer": caller,
            })
        return contract

    # ========================================================================
    # PERMISSIONLESS
    # ========================================================================

    def check_expired(self, offer_id: str) -> EscrowContract:
        with self._transition(offer_id):
            contract = self.store.require(offer_id, for_update=True)
            self._check_pending(contract)
            now = self.clock.now()
            if now < contract.expired_at:
                raise ContractNotExpired(f"Offer {offer_id} expires at {contract.expired_at}")

            self._refund_brand(contract)
            self.store.advance(contract, ContractStatusDB.PENDING, ContractNotPending, status=ContractStatusDB.EXPIRED)
            self.events.append(offer_id, EventTypeDB.CONTRACT_EXPIRED, f"expired at {now}", {
                "expired_at": contract.expired_at,
            })
        return contract

    def request_verification(self, offer_id: str) -> Dict[str, Any]:
        """
        Ask the oracle for the offer's engagement.

        Only starts the exchange; the outcome arrives later through
        ``handle_oracle_response``. Calling again before the response issues
        a second independent request.
        """
        with self._transition(offer_id, FEE_VAULT_ADDRESS):
            contract = self.store.require(offer_id, for_update=True)
            if contract.status != ContractStatusDB.ACTIVE:
                raise ContractNotActive(f"Offer {offer_id} is {contract.status.value}")
            if self.clock.now() < contract.verification_due_at:
                raise DurationNotPassed(f"Verification opens at {contract.verification_due_at}")

            request = self.router.submit(offer_id)
            self.events.append(offer_id, EventTypeDB.VERIFICATION_REQUESTED, f"request {request['id']}", {
                "request_id": request["id"],
                "times": request["data"]["times"],
            })

        self.router.dispatch(request, on_failure=self._cancel_request)
        return request

    # ========================================================================
    # ORACLE
    # ========================================================================

    def handle_oracle_response(self, request_id: str, metric: int, caller: str) -> Optional[EscrowContract]:
        """Entry point for the oracle callback. Returns None when nothing changed."""
        return self.router.on_response(request_id, metric, caller, self.fulfill)

    def fulfill(self, offer_id: str, request_id: str, metric: int) -> Optional[EscrowContract]:
        """
        Settle an active contract from an engagement metric.

        A response for a contract that is no longer active, or for a request
        that was already consumed, is a no-op.
        """
        with self._transition(offer_id):
            if self.router.consume(request_id) is None:
                logger.warning(f"[{offer_id}] request {request_id} already consumed")
                return None

            contract = self.store.require(offer_id, for_update=True)
            if contract.status != ContractStatusDB.ACTIVE:
                logger.info(
                    f"[{offer_id}] ignoring engagement {metric} for request {request_id}: "
                    f"contract is {contract.status.value}"
                )
                return None

            self.events.append(offer_id, EventTypeDB.VERIFICATION_FULFILLED, f"engagement {metric}", {
                "request_id": request_id,
                "engagement": metric,
                "minimum_engagement": contract.minimum_engagement,
            })
            if metric >= contract.minimum_engagement:
                amount = self.custodian.payout(offer_id, contract.influencer)
                self.store.advance(contract, ContractStatusDB.ACTIVE, ContractNotActive, status=ContractStatusDB.COMPLETED)
                self.events.append(offer_id, EventTypeDB.PAYMENT_RELEASED, f"{amount} to {contract.influencer}", {
                    "influencer": contract.influencer,
                    "amount": amount,
                })
            else:
                self._refund_brand(contract)
                self.store.advance(contract, ContractStatusDB.ACTIVE, ContractNotActive, status=ContractStatusDB.REFUNDED)
        return contract

    # ========================================================================
    # FEE VAULT
    # ========================================================================

    def deposit_fees(self, sender: str, amount: int) -> int:
        with self._transition(FEE_VAULT_ADDRESS):
            self.custodian.deposit_fees(sender, amount)
            balance = self.custodian.balance_of(FEE_VAULT_ADDRESS)
        logger.info(f"Fee vault topped up with {amount} by {sender}")
        return balance

    def sweep_fees(self, caller: str, to: str, owner) -> int:
        """Owner-only: move the fee vault balance out. Escrow state is untouched."""
        owner.check(caller)
        with self._transition(FEE_VAULT_ADDRESS):
            amount = self.custodian.sweep_fees(to)
        logger.info(f"Fee vault swept: {amount} to {to}")
        return amount

    def fee_balance(self) -> int:
        return self.custodian.balance_of(FEE_VAULT_ADDRESS)

    # ========================================================================
    # READS
    # ========================================================================

    def get(self, offer_id: str) -> EscrowContract:
        return self.store.require(offer_id)

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _check_influencer(self, contract: EscrowContract, caller: str) -> None:
        if caller != contract.influencer:
            raise OnlyInfluencer()

    def _check_pending(self, contract: EscrowContract) -> None:
        if contract.status != ContractStatusDB.PENDING:
            raise ContractNotPending(f"Offer {contract.offer_id} is {contract.status.value}")

    def _refund_brand(self, contract: EscrowContract) -> int:
        amount = self.custodian.payout(contract.offer_id, contract.brand, refund=True)
        self.events.append(contract.offer_id, EventTypeDB.PAYMENT_REFUNDED, f"{amount} to {contract.brand}", {
            "brand": contract.brand,
            "amount": amount,
        })
        return amount

    def _cancel_request(self, request_id: str) -> None:
        correlation = self.router.lookup(request_id)
        if correlation is None:
            return
        offer_id = correlation.offer_id
        with self._transition(offer_id, FEE_VAULT_ADDRESS):
            cancelled = self.router.cancel(request_id)
            if cancelled is not None:
                self.events.append(offer_id, EventTypeDB.VERIFICATION_CANCELLED, f"request {request_id} not delivered", {
                    "request_id": request_id,
                    "fee_refunded": cancelled.fee,
                })
        logger.error(f"[{offer_id}] request {request_id} could not be delivered")


# ============================================================================
# DEPENDENCIES
# ============================================================================

_oracle_client: Optional[OracleClient] = None


def get_oracle_client() -> OracleClient:
    """FastAPI dependency returning the shared oracle client. Override in tests."""
    global _oracle_client
    if _oracle_client is None:
        _oracle_client = OracleClient()
    return _oracle_client


def get_payout_transfer() -> Optional[TransferHook]:
    """FastAPI dependency for the external settlement hook. None settles on the ledger only."""
    return None


def get_escrow_service(
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    oracle_client: OracleClient = Depends(get_oracle_client),
    transfer: Optional[TransferHook] = Depends(get_payout_transfer),
) -> EscrowService:
    """Get EscrowService instance."""
    return EscrowService(db, clock, oracle_client=oracle_client, transfer=transfer)
