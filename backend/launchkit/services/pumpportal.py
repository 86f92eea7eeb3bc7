import logging
from typing import List, Optional

import base58
import httpx

from launchkit.config import settings
from launchkit.exceptions import TransactionGenerationError
from launchkit.schemas import TransactionIntent

logger = logging.getLogger(__name__)


class PumpPortalClient:
    """Client for the PumpPortal trade-local API (unsigned transaction generation).

    Wire contract: the bundle endpoint answers with a JSON array holding one
    base58-encoded unsigned ``VersionedTransaction`` per requested intent, in
    request order.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.PUMPPORTAL_TRADE_LOCAL_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self._transport = transport

    async def generate(self, intents: List[TransactionIntent]) -> List[bytes]:
        logger.info(f"📦 Generating {len(intents)} bundled transactions...")
        payload = [intent.to_trade_params() for intent in intents]

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload, headers={"Content-Type": "application/json"})
        except httpx.TimeoutException as e:
            raise TransactionGenerationError("Transaction generation timed out") from e
        except httpx.HTTPError as e:
            raise TransactionGenerationError(f"Transaction generation failed: {e}") from e

        if response.status_code != 200:
            error_text = response.text[:500] if response.text else "No error message"
            raise TransactionGenerationError(f"HTTP {response.status_code}: {error_text}")

        try:
            encoded = response.json()
        except ValueError as e:
            raise TransactionGenerationError("Invalid response format") from e

        if not isinstance(encoded, list):
            raise TransactionGenerationError("Invalid response format")
        if len(encoded) != len(intents):
            raise TransactionGenerationError(
                f"Expected {len(intents)} transactions, got {len(encoded)}"
            )

        try:
            transactions = [base58.b58decode(tx) for tx in encoded]
        except (ValueError, TypeError) as e:
            raise TransactionGenerationError(f"Transaction payload is not base58: {e}") from e

        logger.info(f"✅ {len(transactions)} transactions generated")
        return transactions
