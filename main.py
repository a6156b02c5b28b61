import argparse
import time
import schedule
import logging
import sys

from config.app_config import KEEPER_INTERVAL_SECONDS, LOG_LEVEL
from core.clock import system_clock
from database.config import SessionLocal, init_db
from services.escrow_service import EscrowService, get_oracle_client
from services.keeper import run_keeper_cycle

logger = logging.getLogger(__name__)


def run_keeper_once():
    logger.info("Starting Keeper Cycle...")
    db = SessionLocal()
    try:
        service = EscrowService(db, system_clock, oracle_client=get_oracle_client())
        return run_keeper_cycle(service)
    except Exception:
        logger.exception("Error in keeper cycle")
    finally:
        db.close()


def start_scheduler(interval_seconds: int):
    logger.info(f"Starting Keeper Scheduler (every {interval_seconds}s)...")
    # Run once immediately
    run_keeper_once()

    schedule.every(interval_seconds).seconds.do(run_keeper_once)

    while True:
        schedule.run_pending()
        time.sleep(1)


def main():
    parser = argparse.ArgumentParser(description="Escrow Keeper Worker")
    parser.add_argument("--mode", choices=["once", "schedule"], default="schedule", help="Run once or schedule")
    parser.add_argument("--interval", type=int, default=KEEPER_INTERVAL_SECONDS or 60, help="Seconds between cycles")
    args = parser.parse_args()

    # Configure Logging
    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    init_db()

    if args.mode == "schedule":
        start_scheduler(args.interval)
    else:
        run_keeper_once()


if __name__ == "__main__":
    main()
