# launchkit/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
import enum

import base58

from launchkit.exceptions import AtomicFailureKind
from launchkit.models import ProjectStatus


# ============================================
# ENUMS
# ============================================
class IntentKind(str, enum.Enum):
    CREATE = "create"
    BUY = "buy"


class SubmissionPath(str, enum.Enum):
    ATOMIC = "jito_bundle"
    SEQUENTIAL = "sequential"
    RECONCILED = "reconciled"


# ============================================
# ACCOUNTS / PROJECTS
# ============================================
class Account(BaseModel):
    """Ledger address plus the id the key custodian signs for"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Custodian account id")
    address: str = Field(..., description="Base58 public key")


class FundingAssignment(BaseModel):
    id: int
    project_id: str
    account: Account
    buy_amount: float = 0.0
    funded: bool = False


class ProjectSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    status: ProjectStatus = ProjectStatus.DRAFT
    buy_amount_per_wallet: float = 0.0
    bundle_count: int = 0
    mint_address: Optional[str] = None
    metadata_uri: Optional[str] = None
    pending_mint_address: Optional[str] = None
    assignments: List[FundingAssignment] = Field(default_factory=list)

    @property
    def funded_assignments(self) -> List[FundingAssignment]:
        return [a for a in self.assignments if a.funded]


# ============================================
# BUNDLE BUILDING
# ============================================
class TokenMetadataRef(BaseModel):
    name: str
    symbol: str
    uri: str


class TransactionIntent(BaseModel):
    kind: IntentKind
    account: Account
    mint: str
    amount_sol: float
    priority_fee_sol: float
    slippage: int = 10
    pool: str = "pump"
    token_metadata: Optional[TokenMetadataRef] = None

    def to_trade_params(self) -> Dict[str, Any]:
        """Request body entry for the trade-local bundle endpoint"""
        params: Dict[str, Any] = {
            "publicKey": self.account.address,
            "action": self.kind.value,
            "mint": self.mint,
            "amount": self.amount_sol,
            "denominatedInSol": "true",
            "slippage": self.slippage,
            "priorityFee": self.priority_fee_sol,
            "pool": self.pool,
        }
        if self.token_metadata is not None:
            params["tokenMetadata"] = self.token_metadata.model_dump()
        return params


class Composition(BaseModel):
    intents: List[TransactionIntent]
    buyers: List[FundingAssignment] = Field(default_factory=list)
    # Funded assignments that did not fit in the bundle
    overflow: List[FundingAssignment] = Field(default_factory=list)


class SignedTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: int
    raw: bytes
    signature: str

    @property
    def encoded(self) -> str:
        return base58.b58encode(self.raw).decode("utf-8")


# ============================================
# RESULTS
# ============================================
class DispersalResult(BaseModel):
    target: str = Field(..., description="Target address")
    success: bool
    signature: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class BundleOutcome(BaseModel):
    success: bool
    bundle_id: Optional[str] = None
    signatures: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    failure: Optional[AtomicFailureKind] = None
    failed_position: Optional[int] = None


class BundleResult(BaseModel):
    success: bool
    project_id: str
    mint_address: Optional[str] = None
    bundle_id: Optional[str] = None
    signatures: List[str] = Field(default_factory=list)
    path: Optional[SubmissionPath] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    failed_position: Optional[int] = Field(None, description="1-based transaction that failed in sequential mode")
    excluded_targets: List[str] = Field(default_factory=list, description="Funded wallets left out by the bundle cap")


class FundingReport(BaseModel):
    success: bool
    message: str
    results: List[DispersalResult] = Field(default_factory=list)


class FundingStatus(BaseModel):
    total_wallets: int
    funded_wallets: int
    all_funded: bool
    percentage: float


class CostEstimate(BaseModel):
    buy_total: float
    fees: float
    total: float
    wallets_assigned: int
    wallets_needed: int


class VerificationReport(FundingStatus):
    updated_count: int


# ============================================
# API REQUESTS
# ============================================
class FundingPlanRequest(BaseModel):
    wallet_ids: List[str] = Field(..., description="Wallets that will buy in the bundle")
    wallet_count: int = Field(..., description="Number of bundle wallets")
    buy_amount: float = Field(..., description="SOL each wallet spends")


class FundRequest(BaseModel):
    funding_wallet_id: str = Field(..., description="Wallet that pays for the dispersal")


class LaunchRequest(BaseModel):
    creator_wallet_id: str = Field(..., description="Creator wallet (signs the create + dev buy)")
    metadata_uri: Optional[str] = Field(None, description="Overrides the project's stored metadata URI")


class FundingOverview(BaseModel):
    status: FundingStatus
    cost: CostEstimate
