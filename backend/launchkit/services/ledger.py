import asyncio
import enum
import logging
from typing import Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from launchkit.config import LAMPORTS_PER_SOL, settings
from launchkit.exceptions import LedgerError

logger = logging.getLogger(__name__)


class ConfirmationStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMEOUT = "timeout"


def sol_to_lamports(amount_sol: float) -> int:
    return int(round(amount_sol * LAMPORTS_PER_SOL))


class LedgerClient:
    """Thin wrapper over the Solana RPC: balances, blockhashes, raw sends and confirmations.

    Every call is bounded by ``rpc_timeout`` (or ``confirm_timeout`` for confirmations);
    an unresponsive node surfaces as ``LedgerError`` / ``ConfirmationStatus.TIMEOUT``
    instead of an unbounded wait.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        rpc_timeout: Optional[float] = None,
        confirm_timeout: Optional[float] = None,
    ):
        self.rpc_url = rpc_url or settings.SOLANA_RPC_URL
        self.rpc_timeout = rpc_timeout or settings.RPC_TIMEOUT
        self.confirm_timeout = confirm_timeout or settings.CONFIRM_TIMEOUT

    def _client(self) -> AsyncClient:
        return AsyncClient(self.rpc_url, commitment=Confirmed, timeout=self.rpc_timeout)

    async def get_balance(self, address: str) -> float:
        """Balance in SOL"""
        try:
            async with self._client() as client:
                response = await asyncio.wait_for(
                    client.get_balance(Pubkey.from_string(address)),
                    timeout=self.rpc_timeout
                )
        except asyncio.TimeoutError as e:
            raise LedgerError(f"Timeout getting balance for {address[:8]}...") from e
        except Exception as e:
            raise LedgerError(f"Balance lookup failed for {address[:8]}...: {e}") from e

        if response.value is None:
            return 0.0
        return response.value / LAMPORTS_PER_SOL

    async def latest_blockhash(self) -> Hash:
        try:
            async with self._client() as client:
                response = await asyncio.wait_for(client.get_latest_blockhash(), timeout=self.rpc_timeout)
        except asyncio.TimeoutError as e:
            raise LedgerError("Timeout fetching latest blockhash") from e
        except Exception as e:
            raise LedgerError(f"Blockhash fetch failed: {e}") from e
        return response.value.blockhash

    async def submit_raw(self, raw: bytes) -> str:
        try:
            async with self._client() as client:
                response = await asyncio.wait_for(
                    client.send_raw_transaction(
                        raw, opts=TxOpts(skip_preflight=False, preflight_commitment=Confirmed, max_retries=3)
                    ),
                    timeout=self.rpc_timeout
                )
        except asyncio.TimeoutError as e:
            raise LedgerError("Timeout sending transaction") from e
        except Exception as e:
            raise LedgerError(f"Send failed: {e}") from e
        return str(response.value)

    async def confirm(self, signature: str, timeout: Optional[float] = None) -> ConfirmationStatus:
        wait = timeout or self.confirm_timeout
        try:
            async with self._client() as client:
                response = await asyncio.wait_for(
                    client.confirm_transaction(Signature.from_string(signature), commitment=Confirmed, sleep_seconds=0.5),
                    timeout=wait
                )
        except (asyncio.TimeoutError, UnconfirmedTxError):
            logger.warning(f"⏰ {signature[:8]}... not confirmed within {wait}s")
            return ConfirmationStatus.TIMEOUT
        except Exception as e:
            raise LedgerError(f"Confirmation check failed for {signature[:8]}...: {e}") from e

        statuses = response.value
        if not statuses or statuses[0] is None:
            return ConfirmationStatus.TIMEOUT
        if statuses[0].err:
            logger.warning(f"❌ {signature[:8]}... failed on-chain: {statuses[0].err}")
            return ConfirmationStatus.FAILED
        return ConfirmationStatus.CONFIRMED

    async def account_exists(self, address: str) -> bool:
        try:
            async with self._client() as client:
                response = await asyncio.wait_for(
                    client.get_account_info(Pubkey.from_string(address)),
                    timeout=self.rpc_timeout
                )
        except asyncio.TimeoutError as e:
            raise LedgerError(f"Timeout looking up account {address[:8]}...") from e
        except Exception as e:
            raise LedgerError(f"Account lookup failed for {address[:8]}...: {e}") from e
        return response.value is not None
