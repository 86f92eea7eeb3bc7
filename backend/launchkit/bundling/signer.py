import logging
from typing import Dict, List

from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.transaction import VersionedTransaction

from launchkit.exceptions import SigningError
from launchkit.schemas import IntentKind, SignedTransaction, TransactionIntent

logger = logging.getLogger(__name__)


class TransactionSigner:
    """Signs generated transactions in bundle order.

    Position 0 (create) needs the fresh mint keypair and the creator; every
    later position (buy) needs only its buyer. Signing stops at the first
    failure and nothing partial is returned.
    """

    def __init__(self, custodian):
        self.custodian = custodian

    async def sign(
        self, intents: List[TransactionIntent], encoded_unsigned: List[bytes], mint_keypair: Keypair
    ) -> List[SignedTransaction]:
        if len(encoded_unsigned) != len(intents):
            raise SigningError(
                min(len(intents), len(encoded_unsigned)),
                f"expected {len(intents)} transactions, got {len(encoded_unsigned)}"
            )

        signed = []
        for position, (intent, raw) in enumerate(zip(intents, encoded_unsigned)):
            signed.append(await self._sign_one(position, intent, raw, mint_keypair))
            logger.info(f"✅ Transaction {position} ({intent.kind.value.upper()}) signed")

        logger.info(f"📝 All {len(signed)} transactions signed")
        return signed

    async def _sign_one(
        self, position: int, intent: TransactionIntent, raw: bytes, mint_keypair: Keypair
    ) -> SignedTransaction:
        expected_kind = IntentKind.CREATE if position == 0 else IntentKind.BUY
        if intent.kind != expected_kind:
            raise SigningError(position, f"expected a {expected_kind.value} intent, got {intent.kind.value}")

        try:
            transaction = VersionedTransaction.from_bytes(raw)
        except Exception as e:
            raise SigningError(position, f"cannot decode transaction: {e}") from e

        message = transaction.message
        signer_keys = [str(key) for key in message.account_keys[:message.header.num_required_signatures]]

        local: Dict[str, Keypair] = {}
        custodial: Dict[str, str] = {intent.account.address: intent.account.id}
        if position == 0:
            local[str(mint_keypair.pubkey())] = mint_keypair

        missing = (set(local) | set(custodial)) - set(signer_keys)
        if missing:
            raise SigningError(position, f"transaction does not expect signer(s) {', '.join(sorted(missing))}")

        message_bytes = to_bytes_versioned(message)
        signatures = []
        try:
            for key in signer_keys:
                if key in local:
                    signatures.append(local[key].sign_message(message_bytes))
                elif key in custodial:
                    signatures.append(await self.custodian.sign(custodial[key], message_bytes))
                else:
                    raise SigningError(position, f"no signing capability for {key[:8]}...")
            signed = VersionedTransaction.populate(message, signatures)
        except SigningError:
            raise
        except Exception as e:
            raise SigningError(position, str(e)) from e

        return SignedTransaction(position=position, raw=bytes(signed), signature=str(signatures[0]))
