"""Collaborator contracts the launch core is written against.

The SQLAlchemy repositories, the Fernet-backed custodian and the HTTP/RPC
clients in ``launchkit.services`` implement these; tests swap in fakes.
"""
from typing import Any, Dict, List, Optional, Protocol

from solders.hash import Hash
from solders.signature import Signature

from launchkit.models import EventType
from launchkit.schemas import Account, ProjectSnapshot, TransactionIntent
from launchkit.services.ledger import ConfirmationStatus


class KeyCustodian(Protocol):
    async def get_account(self, account_id: str) -> Account: ...

    async def sign(self, account_id: str, message: bytes) -> Signature: ...


class Ledger(Protocol):
    async def get_balance(self, address: str) -> float: ...

    async def latest_blockhash(self) -> Hash: ...

    async def submit_raw(self, raw: bytes) -> str: ...

    async def confirm(self, signature: str, timeout: Optional[float] = None) -> ConfirmationStatus: ...

    async def account_exists(self, address: str) -> bool: ...


class TransactionGenerator(Protocol):
    async def generate(self, intents: List[TransactionIntent]) -> List[bytes]: ...


class BlockBuilder(Protocol):
    async def send_bundle(self, encoded_transactions: List[str]) -> str: ...

    async def get_bundle_status(self, bundle_id: str) -> str: ...

    def pick_tip_account(self) -> str: ...


class EventSink(Protocol):
    async def append(self, event_type: EventType, payload: Dict[str, Any], mint: Optional[str] = None) -> None: ...


class ProjectStore(Protocol):
    async def get(self, project_id: str) -> ProjectSnapshot: ...

    async def update(self, project_id: str, **patch: Any) -> ProjectSnapshot: ...

    async def mark_funded(self, assignment_ids: List[int]) -> None: ...

    async def replace_assignments(self, project_id: str, wallet_ids: List[str], buy_amount: float) -> None: ...

    async def toggle_assignment(self, project_id: str, wallet_id: str, buy_amount: float) -> bool: ...

    async def claim_pending_mint(self, project_id: str, mint_address: str) -> ProjectSnapshot: ...
