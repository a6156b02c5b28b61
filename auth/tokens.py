# Token issuing for principals
# Usage: python -m auth.tokens <address> [--hours 24]

import argparse
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt

from auth.dependencies import JWT_SECRET, JWT_ALGORITHM

ACCESS_TOKEN_EXPIRE_HOURS = 24


def create_access_token(address: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed bearer token whose subject is ``address``."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS))
    return jwt.encode({"sub": address, "exp": expire}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def main():
    parser = argparse.ArgumentParser(description="Issue an escrow API token")
    parser.add_argument("address", help="Principal address (token subject)")
    parser.add_argument("--hours", type=int, default=ACCESS_TOKEN_EXPIRE_HOURS, help="Token lifetime")
    args = parser.parse_args()
    print(create_access_token(args.address, timedelta(hours=args.hours)))


if __name__ == "__main__":
    main()
