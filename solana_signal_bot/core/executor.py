"""
Execution Protocol

quote → build → sign → broadcast → confirm → read back settled balance.

A timeout after the transaction id is known is not reported as failure
straight away: after a grace period the transaction is fetched by id and
the output balance is re-read. Only when both show success is the swap
upgraded to a (recovered) success.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

from ..constants import SOLSCAN_TX_URL
from ..exceptions import (
    BroadcastFailed,
    BuildFailed,
    InsufficientFunds,
    NoRoute,
    OnChainFailure,
    TransactionTimeout,
)
from .ledger import is_timeout_error
from .models import Direction, SwapResult
from .wallet import SignedTransaction

logger = logging.getLogger(__name__)


class SwapClient(Protocol):
    async def get_quote(self, input_mint: str, output_mint: str, amount: int, slippage_bps: int = 50) -> Optional[Dict[str, Any]]: ...
    async def build_swap(self, quote: Dict[str, Any], user_public_key: str) -> Optional[str]: ...


class Signer(Protocol):
    @property
    def public_key(self) -> str: ...
    def sign(self, swap_transaction_b64: str) -> SignedTransaction: ...


class SwapExecutor:
    def __init__(self, swap_client: SwapClient, ledger, signer: Signer, recovery_grace_sec: float = 5.0):
        self.swap_client = swap_client
        self.ledger = ledger
        self.signer = signer
        self.recovery_grace_sec = recovery_grace_sec

    @property
    def owner(self) -> str:
        return self.signer.public_key

    async def execute(
        self,
        direction: Direction,
        input_asset: str,
        output_asset: str,
        amount: int,
        max_slippage_bps: int,
    ) -> SwapResult:
        """
        Run one swap end to end.

        Raises:
            InsufficientFunds, NoRoute, BuildFailed, BroadcastFailed,
            OnChainFailure, TransactionTimeout
        """
        owner = self.owner
        tag = f"[{direction.value}]"

        # 1. Funding pre-check
        funding = await self.ledger.get_balance(owner, input_asset)
        logger.info(f"{tag} {input_asset[:8]}... balance {funding}, requested {amount}")
        if amount <= 0 or funding < amount:
            raise InsufficientFunds(
                "Insufficient balance for swap",
                asset=input_asset[:8], required=amount, available=funding
            )

        output_before = await self.ledger.get_balance(owner, output_asset)

        # 2. Quote
        quote = await self.swap_client.get_quote(input_asset, output_asset, amount, max_slippage_bps)
        if not quote or quote.get("error") or not quote.get("outAmount"):
            error = (quote or {}).get("error", "no quote data")
            raise NoRoute(f"No swap route found: {error}", input=input_asset[:8], output=output_asset[:8])

        logger.info(
            f"{tag} Quote {amount} → {quote['outAmount']} "
            f"(impact: {float(quote.get('priceImpactPct', 0) or 0):.2f}%, slippage {max_slippage_bps} bps)"
        )

        # 3. Build
        swap_tx = await self.swap_client.build_swap(quote, owner)
        if not swap_tx:
            raise BuildFailed("No swap transaction returned", output=output_asset[:8])

        # 4. Sign, broadcast, confirm
        try:
            signed = self.signer.sign(swap_tx)
        except ValueError as e:
            raise BuildFailed(f"Swap transaction could not be signed: {e}") from e
        tx_id = signed.tx_id

        timed_out = False
        try:
            await self.ledger.broadcast(signed.raw)
            logger.info(f"{tag} Transaction sent: {tx_id}")
        except Exception as e:
            if not is_timeout_error(e):
                raise BroadcastFailed(f"Broadcast failed: {e}", tx_id=tx_id) from e
            logger.warning(f"{tag} Broadcast timed out ({e}), tx {tx_id[:16]}...")
            timed_out = True

        if not timed_out:
            try:
                confirmation = await self.ledger.confirm(tx_id)
            except Exception as e:
                # Already broadcast: outcome unknown, verify like a timeout
                logger.warning(f"{tag} Confirmation wait failed ({e}), tx {tx_id[:16]}...")
                timed_out = True
            else:
                if confirmation.is_timeout:
                    timed_out = True
                elif confirmation.error or not confirmation.is_success:
                    # 5. Landed but failed on-chain
                    raise OnChainFailure(
                        f"Transaction failed on-chain: {confirmation.error}", tx_id=tx_id
                    )

        if timed_out:
            return await self._recover(tag, tx_id, owner, output_asset, output_before)

        # 6. Read back what actually settled
        settled = await self.ledger.get_balance(owner, output_asset)
        logger.info(f"{tag} ✅ Swap confirmed: {SOLSCAN_TX_URL}{tx_id} | settled {settled} (+{settled - output_before})")
        return SwapResult(tx_id=tx_id, settled_amount=settled, received_amount=settled - output_before)

    async def _recover(
        self,
        tag: str,
        tx_id: str,
        owner: str,
        output_asset: str,
        output_before: int,
    ) -> SwapResult:
        logger.info(f"{tag} Verifying timed-out tx {tx_id[:16]}... in {self.recovery_grace_sec:.0f}s")
        await asyncio.sleep(self.recovery_grace_sec)

        try:
            tx = await self.ledger.get_transaction(tx_id)
        except Exception as e:
            logger.warning(f"{tag} Transaction lookup failed during recovery: {e}")
            tx = None

        if tx is None:
            raise TransactionTimeout("Transaction not found after timeout", tx_id=tx_id)
        if tx.get("err"):
            raise OnChainFailure(f"Transaction failed on-chain: {tx['err']}", tx_id=tx_id)

        settled = await self.ledger.get_balance(owner, output_asset)
        if settled <= output_before:
            raise TransactionTimeout(
                "Transaction found but output balance did not increase",
                tx_id=tx_id, before=output_before, after=settled
            )

        logger.info(f"{tag} ✅ Recovered timed-out swap {tx_id[:16]}... | settled {settled}")
        return SwapResult(
            tx_id=tx_id,
            settled_amount=settled,
            received_amount=settled - output_before,
            recovered=True,
        )
