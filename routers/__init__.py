# Escrow Routers Module
# Exports all modular API routers

from routers.escrow import router as escrow_router
from routers.oracle import router as oracle_router
from routers.wallet import router as wallet_router
from routers.admin import router as admin_router

__all__ = [
    'escrow_router',
    'oracle_router',
    'wallet_router',
    'admin_router',
]
