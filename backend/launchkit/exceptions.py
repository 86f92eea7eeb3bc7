import enum
from typing import List, Optional


class LaunchKitError(Exception):
    """Base class for every error raised by the launch core"""


# ============================================
# DISPERSAL
# ============================================

class InsufficientFundsError(LaunchKitError):
    """Funding account cannot cover the whole dispersal"""

    def __init__(self, balance: float, required: float):
        self.balance = balance
        self.required = required
        super().__init__(f"Insufficient balance. Have {balance:.4f} SOL, need {required:.4f} SOL")


class PerTargetTransferError(LaunchKitError):
    """One target's transfer failed; siblings still proceed"""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Transfer to {target[:8]}... failed: {reason}")


# ============================================
# COMPOSITION / SIGNING
# ============================================

class PreconditionError(LaunchKitError):
    """Project is missing something the bundle needs"""


class SigningError(LaunchKitError):
    def __init__(self, position: int, reason: str):
        self.position = position
        self.reason = reason
        super().__init__(f"Failed to sign transaction {position}: {reason}")


# ============================================
# SUBMISSION
# ============================================

class AtomicFailureKind(str, enum.Enum):
    RATE_LIMITED = "rate_limited"
    NOT_CONFIRMED = "not_confirmed"
    REJECTED = "rejected"


class AtomicSubmissionError(LaunchKitError):
    def __init__(self, kind: AtomicFailureKind, message: str, bundle_id: Optional[str] = None):
        self.kind = kind
        self.bundle_id = bundle_id
        super().__init__(message)

    @property
    def allows_fallback(self) -> bool:
        return self.kind in (AtomicFailureKind.RATE_LIMITED, AtomicFailureKind.NOT_CONFIRMED)


class SequentialSubmissionError(LaunchKitError):
    """``position`` is 1-based: "transaction 3 failed to confirm"."""

    def __init__(self, position: int, message: str, signatures: Optional[List[str]] = None):
        self.position = position
        self.signatures = list(signatures or [])
        super().__init__(message)


# ============================================
# LIFECYCLE / LOOKUPS
# ============================================

class NotReadyError(LaunchKitError):
    """Project lifecycle does not allow a launch"""


class InvalidTransitionError(LaunchKitError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move project from {current.value} to {target.value}")


class ProjectNotFoundError(LaunchKitError):
    pass


class AccountNotFoundError(LaunchKitError):
    pass


class BundleConfigError(LaunchKitError):
    pass


class AccountBusyError(LaunchKitError):
    """Another step is already transacting from this account"""


class LaunchInProgressError(LaunchKitError):
    """Another attempt has already claimed a mint for this project"""


# ============================================
# EXTERNAL SERVICES
# ============================================

class LedgerError(LaunchKitError):
    pass


class TransactionGenerationError(LaunchKitError):
    pass


class BlockBuilderError(LaunchKitError):
    pass


class BundleRateLimitedError(BlockBuilderError):
    pass
