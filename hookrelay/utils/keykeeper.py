# hookrelay/utils/keykeeper.py
import json
import logging
from typing import Any, Dict, List

import requests

logger = logging.getLogger(__name__)

SERVICE_NAME = "keyhook"


class KeyKeeperClient:
    """HTTP client for the credential authority that verifies tokens and records usage."""

    def __init__(self, base_url: str, service_secret: str = "", timeout: float = 10):
        self.base_url = (base_url or "").rstrip("/")
        self.service_secret = service_secret or ""
        self.timeout = timeout

    def _headers(self) -> dict:
        return {"Content-Type": "application/json", "X-Service-Secret": self.service_secret}

    def verify(self, token: str, operation: str, quantity: int = 1) -> Dict[str, Any]:
        """
        Ask the authority whether ``token`` may perform ``operation``.

        Raises requests.RequestException on transport errors and ValueError
        when the response is not JSON.
        """
        url = f"{self.base_url}/v1/services/verify"
        payload = {
            "token": token,
            "service": SERVICE_NAME,
            "operation": operation,
            "quantity": quantity,
        }
        logger.debug("POST %s operation=%s", url, operation)

        resp = requests.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected verify response: {json.dumps(data)[:200]}")
        return data

    def report_usage(self, records: List[Dict[str, Any]]) -> bool:
        url = f"{self.base_url}/v1/services/usage"
        payload = {"service": SERVICE_NAME, "records": records}

        resp = requests.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
        if not resp.ok:
            logger.error("Usage report rejected: %s %s", resp.status_code, resp.text[:500])
        return resp.ok
