"""
Ledger collaborator over Solana JSON-RPC.

Balances, broadcast, confirmation and transaction lookup for the single
trading wallet.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Union

import httpx
from solana.rpc.async_api import AsyncClient
from solana.rpc.types import TokenAccountOpts, TxOpts
from solders.pubkey import Pubkey  # type: ignore
from solders.signature import Signature  # type: ignore

from ..constants import WSOL_MINT
from ..exceptions import NetworkException
from ..utils.retry import async_retry
from .tx_confirmer import TransactionConfirmer, TxResult

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 6

_TIMEOUT_MARKERS = (
    "blockhash not found",
    "block height exceeded",
    "blockheight exceeded",
    "expired",
    "timed out",
    "timeout",
)


def is_timeout_error(exc: BaseException) -> bool:
    """Timeout-class failures: the transaction may still land."""
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _TIMEOUT_MARKERS)


def _as_pubkey(value: Union[str, Pubkey]) -> Pubkey:
    return value if isinstance(value, Pubkey) else Pubkey.from_string(str(value))


class SolanaLedger:
    def __init__(self, client: AsyncClient, confirm_timeout_sec: float = 60.0):
        self.client = client
        self.confirmer = TransactionConfirmer(client)
        self.confirm_timeout_sec = confirm_timeout_sec
        self._decimals_cache: Dict[str, int] = {}

    async def get_balance(self, owner: Union[str, Pubkey], asset: str) -> int:
        """
        Raw balance of `asset` held by `owner` (lamports for SOL).

        Sums ALL token accounts of the mint, not just the ATA, since
        aggregators may route into non-standard accounts.
        """
        owner_key = _as_pubkey(owner)
        try:
            if asset == WSOL_MINT:
                resp = await self.client.get_balance(owner_key)
                return int(resp.value or 0)

            resp = await self.client.get_token_accounts_by_owner_json_parsed(
                owner_key,
                TokenAccountOpts(mint=Pubkey.from_string(asset))
            )
        except Exception as e:
            raise NetworkException(f"Balance lookup failed: {e}", asset=asset[:8]) from e

        total = 0
        for acc in resp.value or []:
            try:
                total += int(acc.account.data.parsed['info']['tokenAmount']['amount'])
            except (KeyError, TypeError, AttributeError):
                continue
        return total

    async def get_decimals(self, mint: str) -> int:
        """
        Token decimals from the SPL mint account (byte 44 of the layout).

        Falls back to 6, the most common value, if the account can't be read.
        """
        if mint in self._decimals_cache:
            return self._decimals_cache[mint]

        try:
            account_info = await self.client.get_account_info(Pubkey.from_string(mint))
            data = account_info.value.data if account_info and account_info.value else b""
            if len(data) >= 45:
                self._decimals_cache[mint] = data[44]
                return data[44]
            logger.warning(f"Mint account data too short for {mint[:8]}..., using default decimals")
        except Exception as e:
            logger.warning(f"Failed to fetch decimals for {mint[:8]}...: {e}")

        return DEFAULT_DECIMALS

    async def broadcast(self, raw_tx: bytes) -> str:
        result = await self.client.send_raw_transaction(
            raw_tx,
            opts=TxOpts(skip_preflight=True, max_retries=2)
        )
        return str(result.value)

    async def confirm(self, tx_id: str) -> TxResult:
        return await self.confirmer.confirm(tx_id, timeout=self.confirm_timeout_sec)

    @async_retry(max_attempts=3, delay=1.0, exceptions=(httpx.HTTPError,))
    async def get_transaction(self, tx_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a landed transaction by id.

        Returns:
            {"err": ..., "slot": ...} or None if the ledger doesn't know it
        """
        resp = await self.client.get_transaction(
            Signature.from_string(tx_id),
            encoding="json",
            max_supported_transaction_version=0,
        )
        tx = resp.value
        if tx is None:
            return None

        meta = tx.transaction.meta
        return {
            "err": meta.err if meta else None,
            "slot": tx.slot,
        }
