"""
Tests for wallet secret encryption and custodial signing
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from cryptography.fernet import Fernet
from solders.keypair import Keypair

from launchkit.exceptions import AccountNotFoundError, LaunchKitError
from launchkit.models import Wallet
from launchkit.security import WalletKeyCustodian, decrypt_private_key_backend, encrypt_private_key_backend

KEY = Fernet.generate_key().decode()


def _session_factory(wallet):
    session = MagicMock()
    session.__aenter__.return_value = session
    session.__aexit__.return_value = False
    session.get = AsyncMock(return_value=wallet)
    return MagicMock(return_value=session)


def _wallet(keypair: Keypair, secret_key=KEY) -> Wallet:
    return Wallet(
        id="wallet-1",
        user_id="user-1",
        address=str(keypair.pubkey()),
        encrypted_secret=encrypt_private_key_backend(bytes(keypair), secret_key),
    )


class TestSecretEncryption:

    def test_round_trip(self):
        keypair = Keypair()

        encrypted = encrypt_private_key_backend(bytes(keypair), KEY)

        assert bytes(keypair) not in encrypted.encode()
        assert Keypair.from_bytes(decrypt_private_key_backend(encrypted, KEY)) == keypair

    def test_wrong_key(self):
        encrypted = encrypt_private_key_backend(bytes(Keypair()), KEY)

        with pytest.raises(LaunchKitError, match="decrypt"):
            decrypt_private_key_backend(encrypted, Fernet.generate_key().decode())

    def test_rejects_short_secret(self):
        with pytest.raises(ValueError):
            encrypt_private_key_backend(b"\x00" * 32, KEY)


@pytest.mark.asyncio
class TestWalletKeyCustodian:

    async def test_get_account(self):
        keypair = Keypair()
        custodian = WalletKeyCustodian(_session_factory(_wallet(keypair)), KEY)

        account = await custodian.get_account("wallet-1")

        assert account.id == "wallet-1"
        assert account.address == str(keypair.pubkey())

    async def test_sign(self):
        keypair = Keypair()
        custodian = WalletKeyCustodian(_session_factory(_wallet(keypair)), KEY)

        signature = await custodian.sign("wallet-1", b"message")

        assert signature.verify(keypair.pubkey(), b"message")

    async def test_unknown_wallet(self):
        custodian = WalletKeyCustodian(_session_factory(None), KEY)

        with pytest.raises(AccountNotFoundError):
            await custodian.sign("missing", b"message")

    async def test_secret_must_match_address(self):
        wallet = _wallet(Keypair())
        wallet.address = str(Keypair().pubkey())
        custodian = WalletKeyCustodian(_session_factory(wallet), KEY)

        with pytest.raises(LaunchKitError, match="does not match"):
            await custodian.sign("wallet-1", b"message")
