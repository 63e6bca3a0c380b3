"""
Signature status polling.

A swap is "confirmed" once the cluster reports commitment `confirmed` or
`finalized` for its signature. Running out of time yields EXPIRED, which
the executor treats as a timeout and verifies independently.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from solana.rpc.async_api import AsyncClient
from solders.signature import Signature  # type: ignore
from solders.transaction_status import TransactionStatus  # type: ignore

logger = logging.getLogger(__name__)


class TxStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"
    FAILED = "failed"
    EXPIRED = "expired"


_COMMITMENT_STATUS = {
    "finalized": TxStatus.FINALIZED,
    "confirmed": TxStatus.CONFIRMED,
}


@dataclass
class TxResult:
    signature: str
    status: TxStatus
    slot: Optional[int] = None
    error: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def is_success(self) -> bool:
        return self.status in (TxStatus.CONFIRMED, TxStatus.FINALIZED)

    @property
    def is_timeout(self) -> bool:
        return self.status is TxStatus.EXPIRED


def status_from_commitment(confirmation_status) -> TxStatus:
    """Map an RPC confirmation status (enum or string, depending on solders) to TxStatus."""
    name = str(confirmation_status or "").lower().rsplit(".", 1)[-1]
    return _COMMITMENT_STATUS.get(name, TxStatus.PENDING)


class TransactionConfirmer:
    def __init__(
        self,
        client: AsyncClient,
        min_poll_interval: float = 0.5,
        max_poll_interval: float = 2.0,
    ):
        self.client = client
        self.min_poll_interval = min_poll_interval
        self.max_poll_interval = max_poll_interval

    async def confirm(self, signature: str, timeout: float = 60.0) -> TxResult:
        """
        Poll until the signature is confirmed, failed on-chain or `timeout` elapses.

        RPC hiccups while polling count as "not seen yet".
        """
        started = time.monotonic()
        interval = self.min_poll_interval
        sig = Signature.from_string(signature)

        while True:
            elapsed = time.monotonic() - started
            if elapsed >= timeout:
                logger.warning(f"Tx {signature[:16]}... not confirmed after {elapsed:.1f}s")
                return TxResult(
                    signature, TxStatus.EXPIRED, error=f"Timeout after {timeout:.0f}s", elapsed_seconds=elapsed
                )

            status = await self._fetch_status(sig)
            if status is not None:
                if status.err:
                    logger.error(f"Tx {signature[:16]}... failed on-chain: {status.err}")
                    return TxResult(
                        signature, TxStatus.FAILED, slot=status.slot, error=str(status.err),
                        elapsed_seconds=time.monotonic() - started,
                    )

                state = status_from_commitment(status.confirmation_status)
                if state is not TxStatus.PENDING:
                    result = TxResult(
                        signature, state, slot=status.slot, elapsed_seconds=time.monotonic() - started
                    )
                    logger.info(f"Tx {signature[:16]}... {state.value} in {result.elapsed_seconds:.1f}s")
                    return result

            await asyncio.sleep(interval)
            interval = min(interval * 1.5, self.max_poll_interval)

    async def _fetch_status(self, sig: Signature) -> Optional[TransactionStatus]:
        try:
            response = await self.client.get_signature_statuses([sig])
        except Exception as e:
            logger.debug(f"Signature status lookup failed: {e}")
            return None
        return response.value[0] if response.value else None
