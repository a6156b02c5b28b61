# FastAPI Server for the Engagement Escrow

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import sys

from config.app_config import KEEPER_INTERVAL_SECONDS, LOG_LEVEL
from core.errors import EscrowError
from database.config import init_db

from routers.escrow import router as escrow_router
from routers.oracle import router as oracle_router
from routers.wallet import router as wallet_router
from routers.admin import router as admin_router

# Configure Logging
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Engagement Escrow API",
    description="Brand/influencer escrow settled by oracle-verified engagement",
    version="1.0.0"
)

scheduler = None


@app.on_event("startup")
def startup_event():
    # Initialize database tables using SQLAlchemy create_all
    init_db()

    if KEEPER_INTERVAL_SECONDS > 0:
        start_keeper_scheduler(KEEPER_INTERVAL_SECONDS)


@app.on_event("shutdown")
def shutdown_event():
    if scheduler is not None:
        scheduler.shutdown(wait=False)


def start_keeper_scheduler(interval_seconds: int):
    """Run the keeper inside the API process."""
    global scheduler
    from apscheduler.schedulers.background import BackgroundScheduler
    from main import run_keeper_once

    scheduler = BackgroundScheduler()
    scheduler.add_job(run_keeper_once, 'interval', seconds=interval_seconds, max_instances=1)
    scheduler.start()
    logger.info(f"Keeper scheduled every {interval_seconds}s")


@app.exception_handler(EscrowError)
async def escrow_error_handler(request: Request, exc: EscrowError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# CORS Setup - Allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Required when using "*"
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(escrow_router, prefix="/api/v2")
app.include_router(oracle_router, prefix="/api/v2")
app.include_router(wallet_router, prefix="/api/v2")
app.include_router(admin_router, prefix="/api/v2")


# Health Check
@app.get("/")
def root():
    return {
        "message": "Engagement Escrow API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
