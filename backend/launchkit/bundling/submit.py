import asyncio
import logging
from typing import List, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, retry_if_result, stop_after_attempt, wait_fixed

from launchkit.config import settings
from launchkit.exceptions import AtomicFailureKind, BlockBuilderError, BundleRateLimitedError, LaunchKitError
from launchkit.schemas import Account, BundleOutcome, SignedTransaction
from launchkit.services.jito import LANDED_STATUSES
from launchkit.services.ledger import ConfirmationStatus, sol_to_lamports
from launchkit.services.transactions import signed_transfer

logger = logging.getLogger(__name__)


def _not_landed(status: Optional[str]) -> bool:
    return status not in LANDED_STATUSES


class AtomicSubmitter:
    """Sends the signed set plus a tip transfer as one Jito bundle and polls until it lands.

    The only retrying done here is the bounded status poll; a rejected,
    rate-limited or unconfirmed bundle is reported back, never resent.
    """

    def __init__(
        self,
        ledger,
        custodian,
        block_builder,
        max_attempts: Optional[int] = None,
        poll_interval: Optional[float] = None,
    ):
        self.ledger = ledger
        self.custodian = custodian
        self.block_builder = block_builder
        self.max_attempts = max_attempts or settings.BUNDLE_STATUS_MAX_ATTEMPTS
        self.poll_interval = settings.BUNDLE_STATUS_POLL_INTERVAL if poll_interval is None else poll_interval

    async def submit_atomic(
        self,
        signed: List[SignedTransaction],
        tip_payer: Account,
        tip_amount_sol: Optional[float] = None,
        tip_account: Optional[str] = None,
    ) -> BundleOutcome:
        tip_amount_sol = settings.JITO_TIP_SOL if tip_amount_sol is None else tip_amount_sol
        tip_account = tip_account or self.block_builder.pick_tip_account()

        logger.info(f"💰 Attempting Jito bundle (tip: {tip_amount_sol} SOL)...")
        try:
            blockhash = await self.ledger.latest_blockhash()
            tip = await signed_transfer(
                self.custodian, tip_payer, tip_account, sol_to_lamports(tip_amount_sol), blockhash,
                position=len(signed)
            )
        except (LaunchKitError, ValueError) as e:
            logger.error(f"❌ Could not build tip transaction: {e}")
            return BundleOutcome(success=False, error=f"Tip transaction failed: {e}", failure=AtomicFailureKind.REJECTED)

        bundle = [tx.encoded for tx in signed] + [tip.encoded]

        try:
            bundle_id = await self.block_builder.send_bundle(bundle)
        except BundleRateLimitedError as e:
            return BundleOutcome(success=False, error=f"rate limit: {e}", failure=AtomicFailureKind.RATE_LIMITED)
        except BlockBuilderError as e:
            logger.error(f"❌ Jito bundle error: {e}")
            return BundleOutcome(success=False, error=str(e) or "Bundle failed", failure=AtomicFailureKind.REJECTED)

        logger.info("⏳ Waiting for bundle confirmation...")
        if await self.wait_for_bundle(bundle_id):
            logger.info("🎉 Jito bundle confirmed on-chain!")
            return BundleOutcome(success=True, bundle_id=bundle_id, signatures=[tx.signature for tx in signed])

        logger.warning("⚠️ Bundle not confirmed within timeout")
        return BundleOutcome(
            success=False,
            bundle_id=bundle_id,
            error="Bundle sent but not confirmed within timeout",
            failure=AtomicFailureKind.NOT_CONFIRMED,
        )

    async def wait_for_bundle(self, bundle_id: str) -> bool:
        """Poll bundle status every ``poll_interval`` for at most ``max_attempts`` checks"""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.poll_interval),
            retry=retry_if_exception_type(BlockBuilderError) | retry_if_result(_not_landed),
            retry_error_callback=lambda retry_state: None,
        )
        status = await retrying(self._check_status, bundle_id)
        return status in LANDED_STATUSES

    async def _check_status(self, bundle_id: str) -> str:
        try:
            status = await self.block_builder.get_bundle_status(bundle_id)
        except BlockBuilderError as e:
            logger.warning(f"⚠️ Bundle status check failed: {e}")
            raise
        logger.debug(f"📊 Bundle status: {status}")
        return status


class SequentialSubmitter:
    """Fallback path: send and confirm one transaction at a time, stop at the first that does not confirm"""

    def __init__(self, ledger, send_delay: Optional[float] = None, confirm_timeout: Optional[float] = None):
        self.ledger = ledger
        self.send_delay = settings.SEQUENTIAL_SEND_DELAY if send_delay is None else send_delay
        self.confirm_timeout = confirm_timeout or settings.CONFIRM_TIMEOUT

    async def submit_sequential(self, signed: List[SignedTransaction]) -> BundleOutcome:
        logger.info(f"🔄 Sending {len(signed)} transactions sequentially...")
        signatures: List[str] = []

        for index, transaction in enumerate(signed):
            position = index + 1
            try:
                logger.info(f"📤 Sending transaction {position}/{len(signed)}...")
                signature = await self.ledger.submit_raw(transaction.raw)
                # The create has to land before any buy references the mint
                status = await self.ledger.confirm(signature, self.confirm_timeout)
            except LaunchKitError as e:
                logger.error(f"❌ TX {position} failed: {e}")
                return BundleOutcome(
                    success=False, signatures=signatures, failed_position=position,
                    error=f"Transaction {position} failed: {e}"
                )

            if status != ConfirmationStatus.CONFIRMED:
                logger.error(f"❌ TX {position} confirmation failed: {status.value}")
                return BundleOutcome(
                    success=False, signatures=signatures, failed_position=position,
                    error=f"Transaction {position} failed to confirm"
                )

            signatures.append(signature)
            logger.info(f"✅ TX {position} confirmed!")

            if index < len(signed) - 1:
                await asyncio.sleep(self.send_delay)

        logger.info(f"✅ All {len(signatures)} transactions sent and confirmed!")
        return BundleOutcome(success=True, signatures=signatures)
