import logging
import random
from typing import Any, Dict, List, Optional

import httpx

from launchkit.config import settings
from launchkit.exceptions import BlockBuilderError, BundleRateLimitedError

logger = logging.getLogger(__name__)

LANDED_STATUSES = ("confirmed", "finalized")


class JitoBlockEngineClient:
    """JSON-RPC client for the Jito block engine bundle endpoint"""

    def __init__(
        self,
        url: Optional[str] = None,
        tip_accounts: Optional[List[str]] = None,
        timeout: Optional[float] = None,
        status_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.JITO_BLOCK_ENGINE_URL
        self.tip_accounts = tip_accounts or settings.JITO_TIP_ACCOUNTS
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self.status_timeout = status_timeout or settings.BUNDLE_STATUS_TIMEOUT
        self._transport = transport

    def pick_tip_account(self) -> str:
        return random.choice(self.tip_accounts)

    async def _rpc(self, method: str, params: List[Any], timeout: float) -> httpx.Response:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                return await client.post(self.url, json=payload, headers={"Content-Type": "application/json"})
        except httpx.TimeoutException as e:
            raise BlockBuilderError(f"{method} timed out") from e
        except httpx.HTTPError as e:
            raise BlockBuilderError(f"{method} request failed: {e}") from e

    @staticmethod
    def _body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    async def send_bundle(self, encoded_transactions: List[str]) -> str:
        """Submit base58-encoded signed transactions as one bundle, returns the bundle id"""
        logger.info(f"📦 Sending Jito bundle with {len(encoded_transactions)} transactions...")
        response = await self._rpc("sendBundle", [encoded_transactions], self.timeout)
        body = self._body(response)
        error = body.get("error")
        error_msg = error.get("message") if isinstance(error, dict) else error

        if response.status_code == 429 or (error_msg and "rate limit" in str(error_msg).lower()):
            logger.warning(f"⚠️ Jito rate limited: {error_msg or response.text[:200]}")
            raise BundleRateLimitedError("Network congested. Endpoint is globally rate limited.")

        if error_msg:
            raise BlockBuilderError(str(error_msg))

        if response.status_code != 200:
            raise BlockBuilderError(f"HTTP {response.status_code}: {response.text[:500]}")

        bundle_id = body.get("result")
        if not bundle_id:
            raise BlockBuilderError("Bundle failed")

        logger.info(f"✅ Jito bundle sent: {bundle_id}")
        return bundle_id

    async def get_bundle_status(self, bundle_id: str) -> str:
        """confirmation_status of the bundle, "pending" while unseen"""
        response = await self._rpc("getBundleStatuses", [[bundle_id]], self.status_timeout)
        if response.status_code != 200:
            raise BlockBuilderError(f"Bundle status HTTP {response.status_code}")

        body = self._body(response)
        try:
            value = ((body.get("result") or {}).get("value")) or []
            if value and value[0]:
                return value[0].get("confirmation_status") or "pending"
        except (AttributeError, TypeError, KeyError, IndexError) as e:
            raise BlockBuilderError(f"Malformed bundle status response: {str(body)[:200]}") from e
        return "pending"
