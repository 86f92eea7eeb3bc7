"""
Tests for bundled transaction generation through PumpPortal trade-local
"""
import json

import base58
import httpx
import pytest

from launchkit.exceptions import TransactionGenerationError
from launchkit.schemas import Account, IntentKind, TokenMetadataRef, TransactionIntent
from launchkit.services.pumpportal import PumpPortalClient

URL = "https://pumpportal.test/api/trade-local"
MINT = "So11111111111111111111111111111111111111112"


def _intents():
    creator = Account(id="creator", address="4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T")
    buyer = Account(id="buyer", address="9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM")
    return [
        TransactionIntent(
            kind=IntentKind.CREATE, account=creator, mint=MINT, amount_sol=0.1, priority_fee_sol=0.0005,
            token_metadata=TokenMetadataRef(name="Test", symbol="TST", uri="https://ipfs.io/ipfs/Qm"),
        ),
        TransactionIntent(kind=IntentKind.BUY, account=buyer, mint=MINT, amount_sol=0.1, priority_fee_sol=0.0001),
    ]


def _client(handler):
    return PumpPortalClient(url=URL, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestPumpPortalClient:

    async def test_decodes_base58_transactions(self):
        payloads = [b"\x01create-tx", b"\x01buy-tx"]
        seen = []

        def handler(request):
            seen.extend(json.loads(request.content))
            return httpx.Response(200, json=[base58.b58encode(p).decode() for p in payloads])

        transactions = await _client(handler).generate(_intents())

        assert transactions == payloads
        assert [p["action"] for p in seen] == ["create", "buy"]
        assert seen[0]["tokenMetadata"] == {"name": "Test", "symbol": "TST", "uri": "https://ipfs.io/ipfs/Qm"}

    async def test_count_mismatch(self):
        client = _client(lambda request: httpx.Response(200, json=[base58.b58encode(b"only-one").decode()]))

        with pytest.raises(TransactionGenerationError, match="Expected 2 transactions, got 1"):
            await client.generate(_intents())

    async def test_http_error(self):
        client = _client(lambda request: httpx.Response(400, text="Invalid mint"))

        with pytest.raises(TransactionGenerationError, match="HTTP 400: Invalid mint"):
            await client.generate(_intents())

    async def test_not_a_list(self):
        client = _client(lambda request: httpx.Response(200, json={"error": "bad"}))

        with pytest.raises(TransactionGenerationError, match="Invalid response format"):
            await client.generate(_intents())

    async def test_not_base58(self):
        client = _client(lambda request: httpx.Response(200, json=["0OIl", "0OIl"]))

        with pytest.raises(TransactionGenerationError, match="not base58"):
            await client.generate(_intents())
