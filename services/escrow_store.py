# Escrow Store
# Keyed registry of escrow contracts

from sqlalchemy.orm import Session
from typing import Callable, List, Optional, Type
import logging

from database.models import EscrowContract, ContractStatusDB
from core.errors import AlreadyExists, ContractNotFound, EscrowError

logger = logging.getLogger(__name__)


class EscrowStore:
    """Escrow records keyed by the caller-chosen offer id (exact match)."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, record: EscrowContract) -> EscrowContract:
        existing = self.get(record.offer_id, for_update=True)
        if existing is not None:
            if existing.amount:
                raise AlreadyExists(f"Offer {record.offer_id} already exists")
            # Zero-amount rows carry no custody and are indistinguishable from no offer
            logger.warning(f"Replacing zero-amount record for offer {record.offer_id}")
            self.db.delete(existing)
            self.db.flush()
        self.db.add(record)
        self.db.flush()
        return record

    def get(self, offer_id: str, for_update: bool = False) -> Optional[EscrowContract]:
        query = self.db.query(EscrowContract).filter(EscrowContract.offer_id == offer_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def require(self, offer_id: str, for_update: bool = False) -> EscrowContract:
        record = self.get(offer_id, for_update=for_update)
        if record is None:
            raise ContractNotFound(f"Offer {offer_id} not found")
        return record

    def mutate(self, offer_id: str, fn: Callable[[EscrowContract], None]) -> EscrowContract:
        record = self.require(offer_id, for_update=True)
        fn(record)
        self.db.flush()
        return record

    def advance(
        self,
        record: EscrowContract,
        expected: ContractStatusDB,
        error: Type[EscrowError],
        **values
    ) -> EscrowContract:
        """
        Write ``values`` only while the row is still in ``expected`` status.

        The status check is part of the UPDATE itself, so a writer in another
        process that got there first makes this raise ``error`` instead of
        overwriting its result.
        """
        updated = self.db.query(EscrowContract).filter(
            EscrowContract.offer_id == record.offer_id,
            EscrowContract.status == expected
        ).update(values, synchronize_session=False)
        if not updated:
            raise error(f"Offer {record.offer_id} is no longer {expected.value}")
        self.db.refresh(record)
        return record

    def list(
        self,
        status: Optional[ContractStatusDB] = None,
        party: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[EscrowContract]:
        query = self.db.query(EscrowContract)
        if status is not None:
            query = query.filter(EscrowContract.status == status)
        if party is not None:
            query = query.filter(
                (EscrowContract.brand == party) | (EscrowContract.influencer == party)
            )
        return query.order_by(EscrowContract.created_at, EscrowContract.offer_id).offset(offset).limit(limit).all()
