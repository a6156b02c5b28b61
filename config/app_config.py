import os
from dotenv import load_dotenv

load_dotenv()

# Fixed-point scale for engagement metrics (10^18)
ENGAGEMENT_SCALE = 10 ** 18

# Oracle Settings
ORACLE_NODE_URL = os.getenv("ORACLE_NODE_URL", "http://localhost:6688")
ORACLE_JOB_ID = os.getenv("ORACLE_JOB_ID", "engagement-v1")
ORACLE_FEE = int(os.getenv("ORACLE_FEE", 10 ** 17))  # 0.1 fee token
ORACLE_ENGAGEMENT_URL = os.getenv("ORACLE_ENGAGEMENT_URL", "https://api.engagement.example/v1/campaigns")
ORACLE_ENGAGEMENT_PATH = os.getenv("ORACLE_ENGAGEMENT_PATH", "data,engagement")
ORACLE_CALLBACK_URL = os.getenv("ORACLE_CALLBACK_URL", "http://localhost:8000/api/v2/oracle/fulfill")
ORACLE_TIMEOUT_SECONDS = float(os.getenv("ORACLE_TIMEOUT_SECONDS", 10))

# Principals allowed to deliver oracle responses
TRUSTED_ORACLES = frozenset(
    addr.strip() for addr in os.getenv("TRUSTED_ORACLES", "").split(",") if addr.strip()
)

# Administrative owner (fee sweeps)
OWNER_ADDRESS = os.getenv("OWNER_ADDRESS", "")

# Wallet that pays oracle fees
FEE_VAULT_ADDRESS = "escrow:oracle-fees"

# Keeper Settings (0 disables the in-process keeper)
KEEPER_INTERVAL_SECONDS = int(os.getenv("KEEPER_INTERVAL_SECONDS", 0))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
