# Authentication Dependencies for the Escrow API
# Provides dependencies for getting the calling principal from a JWT token

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from typing import Optional
from pydantic import BaseModel
import os


# JWT Configuration
JWT_SECRET = os.getenv("JWT_SECRET_KEY", "your-secret-key-here")
JWT_ALGORITHM = "HS256"

security = HTTPBearer()


class Principal(BaseModel):
    """An authenticated caller: a brand, an influencer, an oracle or the owner."""
    address: str


def decode_access_token(token: str) -> Optional[Principal]:
    """Decode and validate JWT token."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    address = payload.get("sub")
    if not address:
        return None
    return Principal(address=address)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    """
    Validate JWT token and return the calling principal.
    This is the core authentication dependency.
    """
    principal = decode_access_token(credentials.credentials)

    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return principal
