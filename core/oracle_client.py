# Oracle Node Client
# Sends engagement verification requests to the external oracle node.
import requests
from typing import Optional, Dict, Any
import logging

from config.app_config import ORACLE_NODE_URL, ORACLE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class OracleClientError(Exception):
    """Raised when the oracle node cannot accept a request."""


class OracleClient:
    """HTTP client for the oracle node's job-run endpoint"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None, session=None):
        self.base_url = (base_url or ORACLE_NODE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else ORACLE_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.headers = {"Content-Type": "application/json"}

    def _make_request(self, method: str, endpoint: str, data: Optional[Dict] = None) -> Dict[str, Any]:
        """Make a request to the oracle node"""
        url = f"{self.base_url}{endpoint}"
        try:
            if method == "GET":
                response = self.session.get(url, headers=self.headers, timeout=self.timeout)
            elif method == "POST":
                response = self.session.post(url, headers=self.headers, json=data, timeout=self.timeout)
            else:
                raise ValueError(f"Unsupported method: {method}")

            response.raise_for_status()
            return response.json() if response.content else {}
        except requests.exceptions.RequestException as e:
            logger.error(f"Oracle node error: {e}")
            raise OracleClientError(f"Oracle node error: {str(e)}") from e

    def send_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Submit a verification request.

        Args:
            payload: Request body built by the oracle router, including the
                request id the node must echo back on fulfillment.

        Returns:
            The node's acknowledgement
        """
        job_id = payload["job_id"]
        return self._make_request("POST", f"/v2/jobs/{job_id}/runs", payload)
