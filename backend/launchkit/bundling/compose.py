import logging
from typing import List, Optional

from launchkit.config import settings
from launchkit.exceptions import PreconditionError
from launchkit.schemas import (
    Account, Composition, FundingAssignment, IntentKind, ProjectSnapshot, TokenMetadataRef, TransactionIntent
)

logger = logging.getLogger(__name__)


class BundleComposer:
    """Orders the bundle: the create (with embedded dev buy) first, then up to
    ``max_buys`` funded wallets buying, in assignment order."""

    def __init__(self, max_buys: Optional[int] = None):
        self.max_buys = settings.MAX_BUNDLE_BUYS if max_buys is None else max_buys

    def compose(
        self,
        project: ProjectSnapshot,
        funded_targets: List[FundingAssignment],
        creator: Account,
        metadata_uri: str,
        mint_address: str,
    ) -> Composition:
        if not project.name or not project.symbol:
            raise PreconditionError("Missing token name or symbol")
        if not metadata_uri:
            raise PreconditionError("Missing metadata URI")

        intents = [
            TransactionIntent(
                kind=IntentKind.CREATE,
                account=creator,
                mint=mint_address,
                amount_sol=project.buy_amount_per_wallet,  # Dev buy amount
                priority_fee_sol=settings.CREATE_PRIORITY_FEE_SOL,
                slippage=settings.SLIPPAGE_PERCENT,
                pool=settings.POOL,
                token_metadata=TokenMetadataRef(name=project.name, symbol=project.symbol, uri=metadata_uri),
            )
        ]

        # The creator's buy is already inside the create transaction
        eligible = [
            a for a in funded_targets
            if a.funded and a.account.id != creator.id and a.account.address != creator.address
        ]
        buyers = eligible[:self.max_buys]
        overflow = eligible[self.max_buys:]

        for assignment in buyers:
            intents.append(
                TransactionIntent(
                    kind=IntentKind.BUY,
                    account=assignment.account,
                    mint=mint_address,
                    amount_sol=project.buy_amount_per_wallet,
                    priority_fee_sol=settings.BUY_PRIORITY_FEE_SOL,
                    slippage=settings.SLIPPAGE_PERCENT,
                    pool=settings.POOL,
                )
            )

        logger.info(f"📊 Creator wallet excluded from bundle. {len(buyers)} bundle wallets will buy.")
        if overflow:
            logger.warning(
                f"⚠️ Bundle capacity exceeded: {len(overflow)} funded wallets left out of this bundle"
            )

        return Composition(intents=intents, buyers=buyers, overflow=overflow)
