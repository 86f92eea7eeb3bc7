"""In-memory collaborators for the launch core.

The custodian signs with real solders keypairs and the generator produces
real (unsigned) versioned transactions, so signing and bundle assembly run
the same code paths they do against PumpPortal.
"""
from typing import Dict, List, Optional

import pytest
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from launchkit.config import DEFAULT_JITO_TIP_ACCOUNTS
from launchkit.exceptions import (
    AccountNotFoundError, BlockBuilderError, LaunchInProgressError, LaunchKitError, LedgerError,
    ProjectNotFoundError,
)
from launchkit.lifecycle import check_transition
from launchkit.models import ProjectStatus
from launchkit.schemas import Account, FundingAssignment, IntentKind, ProjectSnapshot
from launchkit.services.ledger import ConfirmationStatus

METADATA_URI = "https://ipfs.io/ipfs/QmTestMetadata"


class FakeCustodian:
    def __init__(self):
        self.keypairs: Dict[str, Keypair] = {}
        self.sign_calls: List[str] = []
        self.fail_for: set = set()

    def add(self, account_id: str, keypair: Optional[Keypair] = None) -> Account:
        keypair = keypair or Keypair()
        self.keypairs[account_id] = keypair
        return Account(id=account_id, address=str(keypair.pubkey()))

    async def get_account(self, account_id: str) -> Account:
        if account_id not in self.keypairs:
            raise AccountNotFoundError(f"Wallet {account_id} not found or has no private key")
        return Account(id=account_id, address=str(self.keypairs[account_id].pubkey()))

    async def sign(self, account_id: str, message: bytes) -> Signature:
        self.sign_calls.append(account_id)
        if account_id in self.fail_for:
            raise LaunchKitError(f"custodian refused to sign for {account_id}")
        if account_id not in self.keypairs:
            raise AccountNotFoundError(f"Wallet {account_id} not found or has no private key")
        return self.keypairs[account_id].sign_message(message)


class FakeLedger:
    """Confirms everything unless ``confirm_results`` says otherwise (consumed in send order)"""

    def __init__(self, balance: float = 10.0):
        self.balances: Dict[str, float] = {}
        self.default_balance = balance
        self.submitted: List[bytes] = []
        self.confirm_results: List[ConfirmationStatus] = []
        self.submit_errors: Dict[int, Exception] = {}
        self.existing_accounts: set = set()
        self.balance_errors: set = set()

    async def get_balance(self, address: str) -> float:
        if address in self.balance_errors:
            raise LedgerError(f"Balance lookup failed for {address[:8]}...")
        return self.balances.get(address, self.default_balance)

    async def latest_blockhash(self) -> Hash:
        return Hash.default()

    async def submit_raw(self, raw: bytes) -> str:
        self.submitted.append(raw)
        error = self.submit_errors.get(len(self.submitted))
        if error is not None:
            raise error
        return f"sig-{len(self.submitted)}"

    async def confirm(self, signature: str, timeout: Optional[float] = None) -> ConfirmationStatus:
        if self.confirm_results:
            return self.confirm_results.pop(0)
        return ConfirmationStatus.CONFIRMED

    async def account_exists(self, address: str) -> bool:
        return address in self.existing_accounts


class FakeGenerator:
    """Builds unsigned transactions whose required signers match what PumpPortal returns"""

    def __init__(self):
        self.calls: List[list] = []

    async def generate(self, intents) -> List[bytes]:
        self.calls.append(list(intents))
        transactions = []
        for intent in intents:
            payer = Pubkey.from_string(intent.account.address)
            metas = [AccountMeta(payer, is_signer=True, is_writable=True)]
            if intent.kind == IntentKind.CREATE:
                metas.append(AccountMeta(Pubkey.from_string(intent.mint), is_signer=True, is_writable=True))
            else:
                metas.append(AccountMeta(Pubkey.from_string(intent.mint), is_signer=False, is_writable=False))
            instruction = Instruction(Pubkey.default(), bytes([len(transactions)]), metas)
            message = MessageV0.try_compile(payer, [instruction], [], Hash.default())
            unsigned = VersionedTransaction.populate(
                message, [Signature.default()] * message.header.num_required_signatures
            )
            transactions.append(bytes(unsigned))
        return transactions


class FakeBlockBuilder:
    def __init__(self, statuses: Optional[List[str]] = None, send_error: Optional[Exception] = None):
        self.statuses = ["confirmed"] if statuses is None else list(statuses)
        self.send_error = send_error
        self.bundles: List[List[str]] = []
        self.status_checks = 0

    def pick_tip_account(self) -> str:
        return DEFAULT_JITO_TIP_ACCOUNTS[0]

    async def send_bundle(self, encoded_transactions: List[str]) -> str:
        self.bundles.append(list(encoded_transactions))
        if self.send_error is not None:
            raise self.send_error
        return f"bundle-{len(self.bundles)}"

    async def get_bundle_status(self, bundle_id: str) -> str:
        self.status_checks += 1
        if not self.statuses:
            return "pending"
        status = self.statuses.pop(0)
        if isinstance(status, BlockBuilderError):
            raise status
        return status


class FakeEvents:
    def __init__(self, fail: bool = False):
        self.events: List[tuple] = []
        self.fail = fail

    async def append(self, event_type, payload, mint=None):
        if self.fail:
            raise RuntimeError("event log unavailable")
        self.events.append((event_type, payload, mint))

    def of_type(self, event_type) -> List[tuple]:
        return [e for e in self.events if e[0] == event_type]


class InMemoryProjectStore:
    """ProjectStore that enforces the same lifecycle rules as the SQL repository"""

    def __init__(self, custodian: FakeCustodian):
        self.custodian = custodian
        self.projects: Dict[str, ProjectSnapshot] = {}
        self.updates: List[dict] = []
        self._next_assignment_id = 1

    def add(self, project: ProjectSnapshot) -> ProjectSnapshot:
        self.projects[project.id] = project
        return project

    async def get(self, project_id: str) -> ProjectSnapshot:
        if project_id not in self.projects:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return self.projects[project_id].model_copy(deep=True)

    async def update(self, project_id: str, **patch) -> ProjectSnapshot:
        project = await self.get(project_id)
        if "status" in patch:
            check_transition(project.status, patch["status"])
        if patch.get("pending_mint_address") and project.pending_mint_address:
            raise LaunchInProgressError(
                f"Project {project_id} already has pending mint {project.pending_mint_address}"
            )
        self.updates.append(patch)
        self.projects[project_id] = project.model_copy(update=patch)
        return await self.get(project_id)

    async def mark_funded(self, assignment_ids: List[int]) -> None:
        ids = set(assignment_ids)
        for project in self.projects.values():
            for assignment in project.assignments:
                if assignment.id in ids:
                    assignment.funded = True

    async def replace_assignments(self, project_id: str, wallet_ids: List[str], buy_amount: float) -> None:
        project = self.projects[project_id]
        assignments = []
        for wallet_id in wallet_ids:
            account = await self.custodian.get_account(wallet_id)
            assignments.append(FundingAssignment(
                id=self._next_assignment_id, project_id=project_id, account=account, buy_amount=buy_amount
            ))
            self._next_assignment_id += 1
        project.assignments = assignments

    async def toggle_assignment(self, project_id: str, wallet_id: str, buy_amount: float) -> bool:
        project = self.projects[project_id]
        kept = [a for a in project.assignments if a.account.id != wallet_id]
        if len(kept) < len(project.assignments):
            project.assignments = kept
            return False
        account = await self.custodian.get_account(wallet_id)
        project.assignments.append(FundingAssignment(
            id=self._next_assignment_id, project_id=project_id, account=account, buy_amount=buy_amount
        ))
        self._next_assignment_id += 1
        return True

    async def claim_pending_mint(self, project_id: str, mint_address: str) -> ProjectSnapshot:
        project = await self.get(project_id)
        if project.pending_mint_address is not None or project.status == ProjectStatus.LAUNCHED:
            raise LaunchInProgressError(f"Project {project_id} already has a launch in flight")
        patch = {"pending_mint_address": mint_address}
        self.updates.append(patch)
        self.projects[project_id] = project.model_copy(update=patch)
        return await self.get(project_id)

    def new_project(
        self,
        project_id: str = "proj-1",
        status: ProjectStatus = ProjectStatus.READY,
        funded: int = 0,
        unfunded: int = 0,
        buy_amount: float = 0.1,
        **fields,
    ) -> ProjectSnapshot:
        assignments = []
        for i in range(funded + unfunded):
            account = self.custodian.add(f"{project_id}-wallet-{i}")
            assignments.append(FundingAssignment(
                id=self._next_assignment_id,
                project_id=project_id,
                account=account,
                buy_amount=buy_amount,
                funded=i < funded,
            ))
            self._next_assignment_id += 1
        fields.setdefault("name", "Test Token")
        fields.setdefault("symbol", "TEST")
        fields.setdefault("metadata_uri", METADATA_URI)
        return self.add(ProjectSnapshot(
            id=project_id,
            status=status,
            buy_amount_per_wallet=buy_amount,
            bundle_count=funded + unfunded,
            assignments=assignments,
            **fields,
        ))


@pytest.fixture
def custodian():
    return FakeCustodian()


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def block_builder():
    return FakeBlockBuilder()


@pytest.fixture
def events():
    return FakeEvents()


@pytest.fixture
def store(custodian):
    return InMemoryProjectStore(custodian)


@pytest.fixture
def creator(custodian):
    return custodian.add("creator")


@pytest.fixture
def funder(custodian):
    return custodian.add("funder")
