import logging
from typing import List, Optional, Tuple

from solders.keypair import Keypair

from launchkit.bundling.compose import BundleComposer
from launchkit.bundling.signer import TransactionSigner
from launchkit.bundling.submit import AtomicSubmitter, SequentialSubmitter
from launchkit.config import settings
from launchkit.exceptions import (
    AtomicFailureKind, AtomicSubmissionError, LaunchKitError, SequentialSubmissionError
)
from launchkit.interfaces import BlockBuilder, EventSink, KeyCustodian, Ledger, ProjectStore, TransactionGenerator
from launchkit.lifecycle import ensure_launchable
from launchkit.models import EventType, ProjectStatus
from launchkit.schemas import (
    Account, BundleResult, Composition, ProjectSnapshot, SignedTransaction, SubmissionPath
)
from launchkit.services.locks import guard, guard_project

logger = logging.getLogger(__name__)


class LaunchOrchestrator:
    """Runs one launch attempt: compose -> generate -> sign -> Jito bundle -> (fallback) sequential.

    The project only moves to LAUNCHED after a submission path succeeds; any
    failure before that leaves its status untouched and comes back as a
    ``BundleResult`` with ``success=False``.
    """

    def __init__(
        self,
        projects: ProjectStore,
        custodian: KeyCustodian,
        ledger: Ledger,
        generator: TransactionGenerator,
        block_builder: BlockBuilder,
        events: Optional[EventSink] = None,
        locks=None,
        composer: Optional[BundleComposer] = None,
        signer: Optional[TransactionSigner] = None,
        atomic: Optional[AtomicSubmitter] = None,
        sequential: Optional[SequentialSubmitter] = None,
        tip_amount_sol: Optional[float] = None,
    ):
        self.projects = projects
        self.custodian = custodian
        self.ledger = ledger
        self.generator = generator
        self.events = events
        self.locks = locks
        self.composer = composer or BundleComposer()
        self.signer = signer or TransactionSigner(custodian)
        self.atomic = atomic or AtomicSubmitter(ledger, custodian, block_builder)
        self.sequential = sequential or SequentialSubmitter(ledger)
        self.tip_amount_sol = settings.JITO_TIP_SOL if tip_amount_sol is None else tip_amount_sol

    async def launch(
        self, project_id: str, creator_account_id: str, metadata_uri: Optional[str] = None
    ) -> BundleResult:
        logger.info(f"🚀 Launching project {project_id} with Jito bundle...")
        try:
            async with guard_project(self.locks, project_id):
                # Status is read under the project lock
                project = await self.projects.get(project_id)
                ensure_launchable(project)
                creator = await self.custodian.get_account(creator_account_id)
                metadata_uri = metadata_uri or project.metadata_uri

                async with guard(self.locks, creator.address) as lease:
                    return await self._launch(project, creator, metadata_uri, lease)

        except LaunchKitError as e:
            logger.error(f"❌ Launch error: {e}")
            return self._failure(project_id, e)
        except Exception as e:
            logger.error(f"❌ Launch error: {e}", exc_info=True)
            return BundleResult(success=False, project_id=project_id, error=str(e), error_type=type(e).__name__)

    async def _launch(
        self, project: ProjectSnapshot, creator: Account, metadata_uri: Optional[str], lease=None
    ) -> BundleResult:
        if project.pending_mint_address:
            reconciled = await self._reconcile(project, metadata_uri)
            if reconciled is not None:
                return reconciled

        logger.info("✅ Pre-launch checks passed")
        funded = project.funded_assignments
        if not funded:
            logger.info("📊 No bundle wallets - launching with dev buy only")
        else:
            logger.info(f"📊 {len(funded)} wallets ready for bundling")

        mint_keypair = Keypair()
        mint_address = str(mint_keypair.pubkey())
        logger.info(f"🔑 Generated mint address: {mint_address}")

        composition = self.composer.compose(project, funded, creator, metadata_uri, mint_address)
        logger.info(f"📦 Preparing {len(composition.intents)} transactions for bundle...")

        unsigned = await self.generator.generate(composition.intents)
        signed = await self.signer.sign(composition.intents, unsigned, mint_keypair)

        if lease is not None:
            await lease.renew()
        # Remembered so a crashed attempt can be reconciled against the chain.
        # Refused if another attempt already holds a pending mint for this project.
        await self.projects.claim_pending_mint(project.id, mint_address)

        path, bundle_id, signatures = await self._submit(signed, creator)

        await self.projects.update(
            project.id,
            status=ProjectStatus.LAUNCHED,
            mint_address=mint_address,
            metadata_uri=metadata_uri,
            pending_mint_address=None,
        )
        await self._log_launch(project, composition, mint_address, bundle_id, signatures, path)

        logger.info("🎉 Launch complete!")
        return BundleResult(
            success=True,
            project_id=project.id,
            mint_address=mint_address,
            bundle_id=bundle_id or (signatures[0] if signatures else None),
            signatures=signatures,
            path=path,
            excluded_targets=[a.account.address for a in composition.overflow],
        )

    async def _submit(
        self, signed: List[SignedTransaction], creator: Account
    ) -> Tuple[SubmissionPath, Optional[str], List[str]]:
        outcome = await self.atomic.submit_atomic(signed, creator, self.tip_amount_sol)
        if outcome.success:
            return SubmissionPath.ATOMIC, outcome.bundle_id, outcome.signatures

        error = AtomicSubmissionError(
            outcome.failure or AtomicFailureKind.REJECTED, outcome.error or "Failed to send bundle", outcome.bundle_id
        )
        if not error.allows_fallback:
            raise error

        logger.warning(f"⚠️ Jito bundle failed: {error}")
        logger.warning("🔄 Falling back to sequential sending (non-atomic)...")

        fallback = await self.sequential.submit_sequential(signed)
        if not fallback.success:
            raise SequentialSubmissionError(
                fallback.failed_position, fallback.error or "Failed to send transactions", fallback.signatures
            )

        logger.info("🎉 Transactions sent sequentially!")
        return SubmissionPath.SEQUENTIAL, None, fallback.signatures

    async def _reconcile(self, project: ProjectSnapshot, metadata_uri: Optional[str]) -> Optional[BundleResult]:
        """Finish an attempt whose mint already landed instead of launching a second token"""
        mint_address = project.pending_mint_address
        if not await self.ledger.account_exists(mint_address):
            logger.info(f"Pending mint {mint_address[:8]}... never landed, starting a fresh attempt")
            await self.projects.update(project.id, pending_mint_address=None)
            return None

        logger.warning(f"♻️ Mint {mint_address[:8]}... from an earlier attempt exists on-chain, marking launched")
        await self.projects.update(
            project.id,
            status=ProjectStatus.LAUNCHED,
            mint_address=mint_address,
            metadata_uri=metadata_uri,
            pending_mint_address=None,
        )
        await self._append(
            EventType.TOKEN_LAUNCH,
            {
                "projectId": project.id,
                "method": SubmissionPath.RECONCILED.value,
                "mintAddress": mint_address,
            },
            mint=mint_address,
        )
        return BundleResult(
            success=True, project_id=project.id, mint_address=mint_address, path=SubmissionPath.RECONCILED
        )

    async def _log_launch(
        self,
        project: ProjectSnapshot,
        composition: Composition,
        mint_address: str,
        bundle_id: Optional[str],
        signatures: List[str],
        path: SubmissionPath,
    ):
        amount = project.buy_amount_per_wallet
        for i, assignment in enumerate(composition.buyers):
            await self._append(
                EventType.TOKEN_BUY,
                {
                    "buyer": assignment.account.address,
                    "amount": amount,
                    "txId": signatures[i + 1] if i + 1 < len(signatures) else None,  # +1 because first is CREATE
                },
                mint=mint_address,
            )

        await self._append(
            EventType.TOKEN_LAUNCH,
            {
                "projectId": project.id,
                "bundleId": bundle_id or (signatures[0] if signatures else "unknown"),
                "method": path.value,
                "mintAddress": mint_address,
                "createTxId": signatures[0] if signatures else None,
                "bundleCount": len(composition.buyers),
                "totalBuyAmount": len(composition.buyers) * amount,
            },
            mint=mint_address,
        )

    async def _append(self, event_type: EventType, payload: dict, mint: Optional[str] = None):
        if self.events is None:
            return
        try:
            await self.events.append(event_type, payload, mint=mint)
        except Exception as e:
            # Don't fail the launch if the audit write fails
            logger.error(f"Failed to log {event_type.value}: {e}")

    @staticmethod
    def _failure(project_id: str, error: LaunchKitError) -> BundleResult:
        result = BundleResult(
            success=False, project_id=project_id, error=str(error), error_type=type(error).__name__
        )
        if isinstance(error, SequentialSubmissionError):
            result.path = SubmissionPath.SEQUENTIAL
            result.failed_position = error.position
            result.signatures = error.signatures
        elif isinstance(error, AtomicSubmissionError):
            result.path = SubmissionPath.ATOMIC
            result.bundle_id = error.bundle_id
        return result
