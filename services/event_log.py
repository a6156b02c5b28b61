# Event Log Service for the Engagement Escrow
# Append-only notification stream for auditors and UIs

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional, List
import logging

from database.models import ContractEvent, EventTypeDB

logger = logging.getLogger(__name__)


class EventLog:
    """
    Best-effort writer for contract events.

    Events are written in a SAVEPOINT inside the caller's transaction, so a
    failed write is logged and dropped without aborting the transition.
    """

    def __init__(self, db: Session, clock):
        self.db = db
        self.clock = clock

    def append(
        self,
        offer_id: str,
        type: EventTypeDB,
        message: str = "",
        data: Optional[dict] = None,
    ) -> Optional[ContractEvent]:
        """
        Append an event for an offer.

        Args:
            offer_id: The offer the event belongs to
            type: Event type
            message: Human readable summary
            data: Optional payload (amounts are stored as strings)

        Returns:
            The created ContractEvent, or None if it could not be written
        """
        event = ContractEvent(
            offer_id=offer_id,
            event_type=type,
            message=message,
            data=_jsonable(data or {}),
            created_at=self.clock.now(),
        )
        logger.info(f"[{offer_id}] {type.value}: {message}")
        try:
            with self.db.begin_nested():
                self.db.add(event)
        except SQLAlchemyError as e:
            logger.warning(f"[{offer_id}] dropped {type.value} event: {e}")
            return None
        return event

    def list(
        self,
        offer_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ContractEvent]:
        """Events in append order, optionally for one offer."""
        query = self.db.query(ContractEvent)
        if offer_id is not None:
            query = query.filter(ContractEvent.offer_id == offer_id)
        return query.order_by(ContractEvent.id).offset(offset).limit(limit).all()


def _jsonable(data: dict) -> dict:
    # Scaled integers exceed JSON number precision in most consumers
    return {k: str(v) if isinstance(v, int) and not isinstance(v, bool) else v for k, v in data.items()}
