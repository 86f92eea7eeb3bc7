from solders.hash import Hash
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from launchkit.schemas import Account, SignedTransaction


def transfer_message(payer: str, recipient: str, lamports: int, blockhash: Hash) -> MessageV0:
    payer_key = Pubkey.from_string(payer)
    instruction = transfer(
        TransferParams(from_pubkey=payer_key, to_pubkey=Pubkey.from_string(recipient), lamports=lamports)
    )
    return MessageV0.try_compile(payer_key, [instruction], [], blockhash)


async def signed_transfer(
    custodian, payer: Account, recipient: str, lamports: int, blockhash: Hash, position: int = 0
) -> SignedTransaction:
    """Build a SOL transfer from ``payer`` and have the custodian sign it"""
    message = transfer_message(payer.address, recipient, lamports, blockhash)
    signature = await custodian.sign(payer.id, to_bytes_versioned(message))
    transaction = VersionedTransaction.populate(message, [signature])
    return SignedTransaction(position=position, raw=bytes(transaction), signature=str(signature))
