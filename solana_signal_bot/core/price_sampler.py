"""Price sampling for the held position.

Price is not read from a market-data feed: it is derived from a quote for
a small fixed amount of the held token against SOL, polled on an interval.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Optional

from ..constants import LAMPORTS_PER_SOL, WSOL_MINT
from .exit_engine import decide
from .models import ExitDecision, PriceSample
from ..exceptions import PositionRejected, SwapException, BotException

if TYPE_CHECKING:
    from .jupiter_client import JupiterClient
    from .position_manager import PositionManager

logger = logging.getLogger(__name__)


class PriceOracle:
    """SOL per token from a test quote, corrected for the mint's decimals."""

    def __init__(self, swap_client: "JupiterClient", sample_token_amount: float = 10_000.0, slippage_bps: int = 50):
        self.swap_client = swap_client
        self.sample_token_amount = sample_token_amount
        self.slippage_bps = slippage_bps

    async def get_price(self, token_id: str, decimals: int) -> Optional[float]:
        """None means "no data" and must not be stored as a zero price."""
        raw_amount = int(self.sample_token_amount * (10 ** decimals))
        quote = await self.swap_client.get_quote(token_id, WSOL_MINT, raw_amount, self.slippage_bps)
        if not quote or quote.get("error") or not quote.get("outAmount"):
            return None

        out_amount = int(quote["outAmount"])
        if out_amount <= 0:
            return None

        sol_out = out_amount / LAMPORTS_PER_SOL
        return sol_out / self.sample_token_amount


class PriceSampler:
    """
    Periodic sample → decide → (maybe) close loop.

    Ticks are a cheap no-op while the slot is empty; errors on a tick are
    logged and the loop carries on.
    """

    def __init__(self, manager: "PositionManager", oracle: PriceOracle, interval_sec: float = 10.0) -> None:
        self.manager = manager
        self.oracle = oracle
        self.interval_sec = interval_sec
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("🎯 Price sampler started (every %.0fs)", self.interval_sec)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Price sampler stopped")

    async def _loop(self) -> None:
        while True:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Sampler tick error: %s", e)
            await asyncio.sleep(self.interval_sec)

    async def tick(self, now: float | None = None) -> ExitDecision | None:
        position = self.manager.position
        if position is None:
            return None

        try:
            price = await self.oracle.get_price(position.token_id, position.decimals)
        except (BotException, OSError, asyncio.TimeoutError) as e:
            logger.warning("Price sample failed for %s: %s", position.token_id[:8], e)
            price = None

        if price is None:
            logger.debug("No price data for %s, skipping tick", position.token_id[:8])
            return None

        sample = PriceSample(timestamp=now if now is not None else time.time(), price=price)
        if not self.manager.record_sample(position.token_id, sample):
            return None

        entry = position.entry_price
        change = f"{(price / entry - 1) * 100:+.1f}%" if entry else "n/a"
        logger.info("📈 %s price %.10f SOL (%s vs entry)", position.token_id[:8], price, change)

        decision = decide(self.manager.history.samples(), position)
        if not decision.should_sell:
            return decision

        logger.info("💰 EXIT signal for %s: %s", position.token_id[:8], decision.reason)
        try:
            await self.manager.attempt_close(position.token_id, decision.reason)
        except PositionRejected as e:
            logger.info("🚫 REJECT close of %s: %s", position.token_id[:8], e)
        except SwapException as e:
            logger.error("❌ SELL failed for %s, will retry next tick: %s", position.token_id[:8], e)
        return decision
