# Keeper
# Triggers the permissionless time-based transitions for due contracts.

from typing import Dict
import logging

from database.models import EscrowContract, ContractStatusDB
from core.errors import EscrowError

logger = logging.getLogger(__name__)


def run_keeper_cycle(service) -> Dict[str, int]:
    """
    Expire overdue pending offers and request verification for matured
    active offers that have no request in flight.

    Errors on one offer are logged and do not stop the cycle.
    """
    now = service.clock.now()
    db = service.db
    stats = {"expired": 0, "verification_requested": 0, "failed": 0}

    overdue = [
        c.offer_id for c in db.query(EscrowContract).filter(
            EscrowContract.status == ContractStatusDB.PENDING,
            EscrowContract.expired_at <= now
        ).all()
    ]
    for offer_id in overdue:
        try:
            service.check_expired(offer_id)
            stats["expired"] += 1
        except EscrowError as e:
            stats["failed"] += 1
            logger.warning(f"[{offer_id}] keeper could not expire: {e.detail}")

    matured = [
        c.offer_id for c in db.query(EscrowContract).filter(
            EscrowContract.status == ContractStatusDB.ACTIVE
        ).all()
        if c.verification_due_at <= now
    ]
    for offer_id in matured:
        if service.router.outstanding(offer_id):
            continue
        try:
            service.request_verification(offer_id)
            stats["verification_requested"] += 1
        except EscrowError as e:
            stats["failed"] += 1
            logger.warning(f"[{offer_id}] keeper could not request verification: {e.detail}")

    logger.info(f"Keeper cycle complete: {stats}")
    return stats
