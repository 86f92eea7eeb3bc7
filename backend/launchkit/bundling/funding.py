import logging
from typing import List, Optional

from launchkit.config import settings
from launchkit.exceptions import BundleConfigError, LedgerError
from launchkit.interfaces import KeyCustodian, Ledger, ProjectStore
from launchkit.lifecycle import check_transition
from launchkit.models import ProjectStatus
from launchkit.schemas import CostEstimate, FundingReport, FundingStatus, ProjectSnapshot, VerificationReport

logger = logging.getLogger(__name__)


def validate_bundle_config(wallet_count: int, buy_amount: float) -> Optional[str]:
    if wallet_count < settings.MIN_BUNDLE_WALLETS or wallet_count > settings.MAX_BUNDLE_WALLETS:
        return f"Wallet count must be between {settings.MIN_BUNDLE_WALLETS} and {settings.MAX_BUNDLE_WALLETS}"
    if buy_amount < settings.MIN_BUY_AMOUNT_SOL or buy_amount > settings.MAX_BUY_AMOUNT_SOL:
        return f"Buy amount must be between {settings.MIN_BUY_AMOUNT_SOL} and {settings.MAX_BUY_AMOUNT_SOL} SOL"
    return None


def funding_status(project: ProjectSnapshot) -> FundingStatus:
    total = len(project.assignments)
    funded = len(project.funded_assignments)
    return FundingStatus(
        total_wallets=total,
        funded_wallets=funded,
        all_funded=total > 0 and total == funded,
        percentage=(funded / total) * 100 if total > 0 else 0.0,
    )


def estimate_cost(project: ProjectSnapshot) -> CostEstimate:
    """Total SOL a project's bundle needs: every buy plus transfer fees and one token-account rent"""
    buy_total = project.bundle_count * project.buy_amount_per_wallet
    fees = project.bundle_count * settings.TRANSFER_FEE_ESTIMATE_SOL + settings.TOKEN_ACCOUNT_RENT_SOL
    return CostEstimate(
        buy_total=buy_total,
        fees=fees,
        total=buy_total + fees,
        wallets_assigned=len(project.assignments),
        wallets_needed=project.bundle_count,
    )


class FundingService:
    """Funding-plan bookkeeping around the Disperser: assignments, funded flags, FUNDING -> READY"""

    def __init__(self, projects: ProjectStore, custodian: KeyCustodian, ledger: Ledger, disperser):
        self.projects = projects
        self.custodian = custodian
        self.ledger = ledger
        self.disperser = disperser

    async def save_funding_plan(
        self, project_id: str, wallet_ids: List[str], wallet_count: int, buy_amount: float
    ) -> ProjectSnapshot:
        error = validate_bundle_config(wallet_count, buy_amount)
        if error:
            raise BundleConfigError(error)

        wallet_ids = list(dict.fromkeys(wallet_ids))
        if len(wallet_ids) > wallet_count:
            raise BundleConfigError(f"{len(wallet_ids)} wallets assigned but the plan only has {wallet_count}")

        project = await self.projects.get(project_id)
        check_transition(project.status, ProjectStatus.FUNDING)

        await self.projects.replace_assignments(project_id, wallet_ids, buy_amount)
        return await self.projects.update(
            project_id,
            bundle_count=wallet_count,
            buy_amount_per_wallet=buy_amount,
            status=ProjectStatus.FUNDING,
        )

    async def toggle_wallet(self, project_id: str, wallet_id: str) -> ProjectSnapshot:
        """Add one wallet to the plan, or drop it if it's already there"""
        project = await self.projects.get(project_id)
        # Only plans that are still being put together
        check_transition(project.status, ProjectStatus.FUNDING)
        await self.custodian.get_account(wallet_id)

        assigned = {a.account.id for a in project.assignments}
        limit = project.bundle_count or settings.MAX_BUNDLE_WALLETS
        if wallet_id not in assigned and len(assigned) >= limit:
            raise BundleConfigError(f"Plan already has {len(assigned)} of {limit} wallets assigned")

        added = await self.projects.toggle_assignment(project_id, wallet_id, project.buy_amount_per_wallet)
        logger.info(f"{'➕ Assigned' if added else '➖ Unassigned'} wallet {wallet_id} for project {project_id}")
        return await self.projects.get(project_id)

    async def fund_project(self, project_id: str, funding_account_id: str) -> FundingReport:
        project = await self.projects.get(project_id)
        to_fund = [a for a in project.assignments if not a.funded]

        if not to_fund:
            await self._promote_if_funded(project_id)
            return FundingReport(success=True, message="All wallets already funded")

        funding = await self.custodian.get_account(funding_account_id)
        # A bit extra per wallet for its own fees
        amount = project.buy_amount_per_wallet + settings.FUNDING_FEE_BUFFER_SOL

        results = await self.disperser.disperse(funding, [a.account for a in to_fund], amount)

        await self.projects.mark_funded([a.id for a, r in zip(to_fund, results) if r.success])

        all_funded = all(r.success for r in results)
        if all_funded:
            await self._promote_if_funded(project_id)

        return FundingReport(
            success=all_funded,
            message="All wallets funded successfully" if all_funded else "Some wallets failed to fund",
            results=results,
        )

    async def verify_balances(self, project_id: str) -> VerificationReport:
        """Re-read every assigned wallet's balance and mark the ones holding enough as funded"""
        project = await self.projects.get(project_id)
        required = project.buy_amount_per_wallet

        newly_funded = []
        for assignment in project.assignments:
            address = assignment.account.address
            try:
                balance = await self.ledger.get_balance(address)
            except LedgerError as e:
                logger.error(f"Error checking wallet {address}: {e}")
                continue

            logger.info(f"Wallet {address[:8]}... balance: {balance:.4f} SOL (needs {required:.4f})")
            if balance >= required and not assignment.funded:
                newly_funded.append(assignment.id)

        await self.projects.mark_funded(newly_funded)
        project = await self._promote_if_funded(project_id)
        status = funding_status(project)
        return VerificationReport(updated_count=len(newly_funded), **status.model_dump())

    async def funding_status(self, project_id: str) -> FundingStatus:
        return funding_status(await self.projects.get(project_id))

    async def _promote_if_funded(self, project_id: str) -> ProjectSnapshot:
        project = await self.projects.get(project_id)
        if project.status == ProjectStatus.FUNDING and funding_status(project).all_funded:
            logger.info("✅ All wallets funded! Project status updated to READY")
            project = await self.projects.update(project_id, status=ProjectStatus.READY)
        return project
