import base64
import json
import logging
from dataclasses import dataclass

from solders.keypair import Keypair # type: ignore
from solders.pubkey import Pubkey # type: ignore
from solders.transaction import VersionedTransaction # type: ignore

from ..exceptions import ConfigurationException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedTransaction:
    tx_id: str
    raw: bytes


def load_keypair(private_key: str) -> Keypair:
    """Accepts a base58 secret key or a JSON array of 64 ints (solana-keygen format)."""
    if not private_key:
        raise ConfigurationException("SOLANA_PRIVATE_KEY not found in environment")

    key = private_key.strip()
    try:
        if key.startswith("["):
            return Keypair.from_bytes(bytes(json.loads(key)))
        return Keypair.from_base58_string(key)
    except (ValueError, TypeError) as e:
        raise ConfigurationException(f"Invalid SOLANA_PRIVATE_KEY: {e}") from e


class WalletManager:
    def __init__(self, private_key: str):
        self.payer = load_keypair(private_key)
        self.pubkey: Pubkey = self.payer.pubkey()
        logger.info(f"Wallet public key: {self.pubkey}")

    @property
    def public_key(self) -> str:
        return str(self.pubkey)

    def sign(self, swap_transaction_b64: str) -> SignedTransaction:
        """Sign a serialized swap transaction; the tx id is known before broadcast."""
        unsigned = VersionedTransaction.from_bytes(base64.b64decode(swap_transaction_b64))
        signed = VersionedTransaction(unsigned.message, [self.payer])
        return SignedTransaction(tx_id=str(signed.signatures[0]), raw=bytes(signed))
