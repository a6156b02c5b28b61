# Funds Custodian
# Holds escrowed value per offer and pays it out exactly once.

from sqlalchemy.orm import Session
from typing import Callable, List, Optional
import logging

from config.app_config import FEE_VAULT_ADDRESS
from database.custody_models import (
    WalletTransaction, EscrowHold,
    WalletTransactionTypeDB, EscrowStatusDB, INTERNAL_DEBIT_TYPES
)
from core.errors import (
    IncorrectAmountSent, InvalidAmount, InsufficientFeeBalance, PayoutFailed
)

logger = logging.getLogger(__name__)

# Settlement hook: transfer(recipient, amount) delivers value outside the ledger
TransferHook = Callable[[str, int], None]


class FundsCustodian:
    """
    Custody of escrowed value.

    The custodian never commits. Callers run it inside their transaction so
    a failed payout rolls back together with the status change. Wallet
    balances are derived from the append-only ledger, so concurrent payouts
    to the same recipient never contend on a balance row.
    """

    def __init__(self, db: Session, clock, transfer: Optional[TransferHook] = None):
        self.db = db
        self.clock = clock
        self.transfer = transfer

    # ------------------------------------------------------------------
    # Escrow holds
    # ------------------------------------------------------------------

    def hold(self, offer_id: str, depositor: str, amount: int, tendered: int) -> EscrowHold:
        """Accept exactly ``amount`` from the depositor."""
        if tendered != amount:
            raise IncorrectAmountSent(f"Sent {tendered}, expected {amount}")
        if amount <= 0:
            raise InvalidAmount()

        now = self.clock.now()
        hold = self.db.merge(EscrowHold(
            offer_id=offer_id,
            depositor=depositor,
            amount=amount,
            status=EscrowStatusDB.LOCKED,
            recipient=None,
            locked_at=now,
            released_at=None,
        ))
        self._record(
            WalletTransactionTypeDB.ESCROW_LOCK,
            amount,
            from_address=depositor,
            offer_id=offer_id,
            description=f"Escrow deposit for offer {offer_id}",
        )
        return hold

    def held(self, offer_id: str) -> int:
        hold = self._get_hold(offer_id)
        if hold is None or hold.status != EscrowStatusDB.LOCKED:
            return 0
        return hold.amount

    def payout(self, offer_id: str, recipient: str, refund: bool = False) -> int:
        """
        Move the whole held amount for an offer to ``recipient``.

        Raises PayoutFailed if nothing is held or delivery fails. Returns the
        amount paid.
        """
        hold = self._get_hold(offer_id, for_update=True)
        if hold is None or hold.status != EscrowStatusDB.LOCKED:
            raise PayoutFailed(f"No funds held for offer {offer_id}")

        amount = hold.amount
        released = self.db.query(EscrowHold).filter(
            EscrowHold.offer_id == offer_id,
            EscrowHold.status == EscrowStatusDB.LOCKED
        ).update({
            "status": EscrowStatusDB.REFUNDED if refund else EscrowStatusDB.RELEASED,
            "recipient": recipient,
            "released_at": self.clock.now(),
        }, synchronize_session=False)
        if not released:
            raise PayoutFailed(f"Funds for offer {offer_id} were already paid out")
        self.db.refresh(hold)

        self._record(
            WalletTransactionTypeDB.ESCROW_REFUND if refund else WalletTransactionTypeDB.ESCROW_RELEASE,
            amount,
            to_address=recipient,
            offer_id=offer_id,
            description=f"{'Refund' if refund else 'Release'} of offer {offer_id} to {recipient}",
        )

        if self.transfer is not None:
            try:
                self.transfer(recipient, amount)
            except Exception as e:
                logger.error(f"[{offer_id}] payout of {amount} to {recipient} failed: {e}")
                raise PayoutFailed(f"Payout to {recipient} failed: {e}") from e

        logger.info(f"[{offer_id}] paid {amount} to {recipient}")
        return amount

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    def balance_of(self, address: str) -> int:
        received = self.total_received(address)
        spent = sum(
            tx.amount for tx in self.db.query(WalletTransaction).filter(
                WalletTransaction.from_address == address,
                WalletTransaction.transaction_type.in_(list(INTERNAL_DEBIT_TYPES))
            )
        )
        return received - spent

    def total_received(self, address: str) -> int:
        return sum(
            tx.amount for tx in self.db.query(WalletTransaction).filter(
                WalletTransaction.to_address == address
            )
        )

    def wallet_transactions(self, address: str, limit: int = 50, offset: int = 0) -> List[WalletTransaction]:
        return self.db.query(WalletTransaction).filter(
            (WalletTransaction.to_address == address) | (WalletTransaction.from_address == address)
        ).order_by(
            WalletTransaction.created_at.desc()
        ).offset(offset).limit(limit).all()

    # ------------------------------------------------------------------
    # Oracle fee vault
    # Callers hold the fee vault lock until commit for charge and sweep.
    # ------------------------------------------------------------------

    def deposit_fees(self, sender: str, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount()
        self._record(
            WalletTransactionTypeDB.FEE_DEPOSIT,
            amount,
            from_address=sender,
            to_address=FEE_VAULT_ADDRESS,
            description=f"Oracle fee top-up from {sender}",
        )

    def charge_fee(self, offer_id: str, fee: int) -> None:
        if fee <= 0:
            return
        available = self.balance_of(FEE_VAULT_ADDRESS)
        if available < fee:
            raise InsufficientFeeBalance(f"Fee vault holds {available}, request needs {fee}")
        self._record(
            WalletTransactionTypeDB.ORACLE_FEE,
            fee,
            from_address=FEE_VAULT_ADDRESS,
            offer_id=offer_id,
            description=f"Oracle fee for offer {offer_id}",
        )

    def refund_fee(self, offer_id: str, fee: int) -> None:
        if fee <= 0:
            return
        self._record(
            WalletTransactionTypeDB.ORACLE_FEE_REFUND,
            fee,
            to_address=FEE_VAULT_ADDRESS,
            offer_id=offer_id,
            description=f"Undelivered oracle request for offer {offer_id}",
        )

    def sweep_fees(self, to: str) -> int:
        """Move the whole fee vault balance to ``to``. Escrow holds are untouched."""
        amount = self.balance_of(FEE_VAULT_ADDRESS)
        if amount <= 0:
            return 0
        self._record(
            WalletTransactionTypeDB.FEE_SWEEP,
            amount,
            from_address=FEE_VAULT_ADDRESS,
            to_address=to,
            description=f"Fee vault sweep to {to}",
        )
        return amount

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_hold(self, offer_id: str, for_update: bool = False) -> Optional[EscrowHold]:
        query = self.db.query(EscrowHold).filter(EscrowHold.offer_id == offer_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def _record(self, type: WalletTransactionTypeDB, amount: int, **fields) -> WalletTransaction:
        transaction = WalletTransaction(
            transaction_type=type,
            amount=amount,
            created_at=self.clock.now(),
            **fields
        )
        self.db.add(transaction)
        self.db.flush()
        return transaction
