import logging
from typing import List, Optional, Union

from launchkit.config import settings
from launchkit.exceptions import AccountBusyError, InsufficientFundsError, LaunchKitError, PerTargetTransferError
from launchkit.models import EventType
from launchkit.schemas import Account, DispersalResult
from launchkit.services.ledger import ConfirmationStatus, sol_to_lamports
from launchkit.services.locks import guard
from launchkit.services.transactions import signed_transfer

logger = logging.getLogger(__name__)


class Disperser:
    """Moves SOL from one funding account to many targets, one confirmed transfer at a time.

    Transfers are strictly sequential: each one takes a fresh blockhash for the
    funding account and is confirmed before the next is built. A failed target
    is recorded and the rest still go out.
    """

    def __init__(self, ledger, custodian, events=None, locks=None, fee_estimate_sol: Optional[float] = None):
        self.ledger = ledger
        self.custodian = custodian
        self.events = events
        self.locks = locks
        self.fee_estimate_sol = settings.TRANSFER_FEE_ESTIMATE_SOL if fee_estimate_sol is None else fee_estimate_sol

    def required_balance(self, target_count: int, amount_per_target: float) -> float:
        return amount_per_target * target_count + self.fee_estimate_sol * target_count

    async def disperse(
        self, funding: Account, targets: List[Union[Account, str]], amount_per_target: float
    ) -> List[DispersalResult]:
        targets = [t.address if isinstance(t, Account) else t for t in targets]
        if not targets:
            return []

        async with guard(self.locks, funding.address) as lease:
            balance = await self.ledger.get_balance(funding.address)
            total_needed = self.required_balance(len(targets), amount_per_target)

            logger.info(f"💼 From wallet: {funding.address[:8]}...{funding.address[-6:]}")
            logger.info(f"💰 Balance: {balance:.4f} SOL")
            logger.info(f"📊 Total needed: {total_needed:.4f} SOL ({amount_per_target} x {len(targets)} + fees)")

            if balance < total_needed:
                error = InsufficientFundsError(balance, total_needed)
                logger.error(f"❌ {error}")
                return [
                    DispersalResult(target=target, success=False, error=str(error), error_type=type(error).__name__)
                    for target in targets
                ]

            results = []
            for target in targets:
                if lease is not None:
                    try:
                        await lease.renew()
                    except AccountBusyError as e:
                        logger.error(f"❌ Skipping {target[:8]}...: {e}")
                        results.append(DispersalResult(
                            target=target, success=False, error=str(e), error_type=type(e).__name__
                        ))
                        continue
                results.append(await self._send_one(funding, target, amount_per_target))
            return results

    async def _send_one(self, funding: Account, target: str, amount_sol: float) -> DispersalResult:
        try:
            logger.info(f"💸 Sending {amount_sol} SOL to {target[:8]}...")
            blockhash = await self.ledger.latest_blockhash()
            transaction = await signed_transfer(
                self.custodian, funding, target, sol_to_lamports(amount_sol), blockhash
            )
            signature = await self.ledger.submit_raw(transaction.raw)
            status = await self.ledger.confirm(signature)
            if status != ConfirmationStatus.CONFIRMED:
                raise PerTargetTransferError(target, f"transaction {signature} {status.value}")
        except PerTargetTransferError as e:
            logger.error(f"❌ {e}")
            return DispersalResult(target=target, success=False, error=str(e), error_type=type(e).__name__)
        except (LaunchKitError, ValueError) as e:
            error = PerTargetTransferError(target, str(e))
            logger.error(f"❌ {error}")
            return DispersalResult(target=target, success=False, error=str(error), error_type=type(error).__name__)

        logger.info(f"✅ Success: {signature}")
        await self._log_transfer(funding, target, amount_sol, signature)
        return DispersalResult(target=target, success=True, signature=signature)

    async def _log_transfer(self, funding: Account, target: str, amount_sol: float, signature: str):
        if self.events is None:
            return
        try:
            await self.events.append(
                EventType.DISPERSE_SOL,
                {"from": funding.address, "to": target, "amount": amount_sol, "txId": signature},
            )
        except Exception as e:
            logger.error(f"Failed to log dispersal to {target[:8]}: {e}")
