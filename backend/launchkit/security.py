import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from solders.keypair import Keypair
from solders.signature import Signature

from launchkit.config import settings
from launchkit.exceptions import AccountNotFoundError, LaunchKitError
from launchkit.models import Wallet
from launchkit.schemas import Account

logger = logging.getLogger(__name__)


def _fernet(key: Optional[str] = None) -> Fernet:
    key = key or settings.ENCRYPTION_KEY
    if not key:
        raise LaunchKitError("ENCRYPTION_KEY is not configured")
    return Fernet(key.encode() if isinstance(key, str) else key)


def encrypt_private_key_backend(secret_key: bytes, key: Optional[str] = None) -> str:
    """Encrypt a 64-byte keypair secret with the backend master key"""
    if len(secret_key) != 64:
        raise ValueError("Invalid private key length")
    return _fernet(key).encrypt(secret_key).decode("utf-8")


def decrypt_private_key_backend(encrypted: str, key: Optional[str] = None) -> bytes:
    try:
        return _fernet(key).decrypt(encrypted.encode("utf-8"))
    except InvalidToken as e:
        raise LaunchKitError("Failed to decrypt wallet secret") from e


class WalletKeyCustodian:
    """Signs on behalf of stored wallets; the decrypted keypair never leaves ``sign``"""

    def __init__(self, session_factory=None, encryption_key: Optional[str] = None):
        if session_factory is None:
            from launchkit.database import AsyncSessionLocal
            session_factory = AsyncSessionLocal
        self.session_factory = session_factory
        self.encryption_key = encryption_key

    async def _wallet(self, account_id: str) -> Wallet:
        async with self.session_factory() as db:
            wallet = await db.get(Wallet, account_id)
        if wallet is None or not wallet.encrypted_secret:
            raise AccountNotFoundError(f"Wallet {account_id} not found or has no private key")
        return wallet

    async def get_account(self, account_id: str) -> Account:
        wallet = await self._wallet(account_id)
        return Account(id=wallet.id, address=wallet.address)

    async def sign(self, account_id: str, message: bytes) -> Signature:
        wallet = await self._wallet(account_id)
        keypair = Keypair.from_bytes(decrypt_private_key_backend(wallet.encrypted_secret, self.encryption_key))
        if str(keypair.pubkey()) != wallet.address:
            raise LaunchKitError(f"Stored secret does not match wallet {wallet.address[:8]}...")
        return keypair.sign_message(message)
