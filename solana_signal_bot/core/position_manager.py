"""
Position Manager

Single-slot state machine: EMPTY → HELD → EMPTY.

- A position exists iff the slot is HELD
- Created only by a confirmed buy, destroyed only by a confirmed sell
- One open/close in flight at a time; a concurrent call is rejected, never queued
"""

import asyncio
import logging
import time
from typing import Dict, Optional

from ..config import Settings
from ..constants import LAMPORTS_PER_SOL, WSOL_MINT
from ..exceptions import (
    AlreadyHeld,
    AlreadyTraded,
    Denylisted,
    NotHeld,
    OperationInProgress,
)
from .models import CloseReport, Direction, Position, PriceSample, SlotState
from .price_history import PriceHistory

logger = logging.getLogger(__name__)


class PositionManager:
    def __init__(
        self,
        settings: Settings,
        executor,
        ledger,
        oracle,
        store=None,
        notifier=None,
    ):
        """
        Args:
            settings: trading parameters, read at open/close time
            executor: SwapExecutor (buy/sell path)
            ledger: balance and decimals lookups
            oracle: PriceOracle used for the entry price sample
            store: optional PositionStore for restart recovery
            notifier: optional TradeNotifier
        """
        self.settings = settings
        self.executor = executor
        self.ledger = ledger
        self.oracle = oracle
        self.store = store
        self.notifier = notifier
        self.sampler = None

        self.history = PriceHistory(settings.PRICE_HISTORY_SIZE)
        self.denylist = set(settings.DENYLIST)
        self._position: Optional[Position] = None
        self._seen: Dict[str, float] = {}
        self._lock = asyncio.Lock()

    def attach_sampler(self, sampler) -> None:
        self.sampler = sampler

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SlotState:
        return SlotState.HELD if self._position is not None else SlotState.EMPTY

    @property
    def position(self) -> Optional[Position]:
        return self._position

    @property
    def is_held(self) -> bool:
        return self._position is not None

    def purchase_time(self, token_id: str) -> Optional[float]:
        return self._seen.get(token_id)

    def purchased_tokens(self) -> Dict[str, float]:
        return dict(self._seen)

    def record_sample(self, token_id: str, sample: PriceSample) -> bool:
        """Append a sample only if the slot still holds `token_id`."""
        if self._position is None or self._position.token_id != token_id:
            return False
        self.history.append(sample)
        return True

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def attempt_open(self, token_id: str, signal_at: Optional[float] = None) -> Position:
        if self._lock.locked():
            raise OperationInProgress("Another open/close is in flight", token=token_id[:8])

        async with self._lock:
            if self._position is not None:
                raise AlreadyHeld("Slot already holds a position", held=self._position.token_id[:8])
            if token_id in self.denylist:
                raise Denylisted("Token is denylisted", token=token_id[:8])
            if self.settings.REENTRY_POLICY == "once" and token_id in self._seen:
                raise AlreadyTraded("Token was already traded", token=token_id[:8])

            amount = self.settings.purchase_amount_lamports
            logger.info(f"🟢 BUY {token_id} with {amount / LAMPORTS_PER_SOL} SOL")

            result = await self.executor.execute(
                Direction.BUY, WSOL_MINT, token_id, amount, self.settings.BUY_SLIPPAGE_BPS
            )

            decimals = await self.ledger.get_decimals(token_id)
            entry_price = await self._sample_entry_price(token_id, decimals)
            now = time.time()

            position = Position(
                token_id=token_id,
                opened_at=now,
                signal_at=signal_at if signal_at is not None else now,
                entry_price=entry_price,
                quantity_held=result.settled_amount,
                base_amount_spent=amount,
                decimals=decimals,
                buy_tx_id=result.tx_id,
            )
            self._activate(position)
            if entry_price > 0:
                self.history.append(PriceSample(now, entry_price))

            logger.info(
                f"✅ BUY filled {token_id[:8]}... | {position.quantity_held} units | "
                f"entry {entry_price:.10f} SOL"
            )

        await self._notify("notify_buy", position)
        return position

    async def attempt_close(self, token_id: str, reason: str) -> CloseReport:
        if self._lock.locked():
            raise OperationInProgress("Another open/close is in flight", token=token_id[:8])

        async with self._lock:
            position = self._position
            if position is None or position.token_id != token_id:
                raise NotHeld("Token is not the held position", token=token_id[:8])

            # Sell what is on the ledger now, not what the buy quoted
            balance = await self.ledger.get_balance(self.executor.owner, token_id)
            logger.info(f"🔴 SELL {token_id} ({balance} units) - reason: {reason}")

            result = await self.executor.execute(
                Direction.SELL, token_id, WSOL_MINT, balance, self.settings.SELL_SLIPPAGE_BPS
            )

            report = CloseReport(
                token_id=token_id,
                reason=reason,
                tx_id=result.tx_id,
                sol_received=result.received_amount,
                base_amount_spent=position.base_amount_spent,
                held_seconds=time.time() - position.opened_at,
            )
            self._deactivate()

            logger.info(
                f"💰 SELL done {token_id[:8]}... | received {report.sol_received / LAMPORTS_PER_SOL:.6f} SOL | "
                f"PnL {report.pnl_lamports / LAMPORTS_PER_SOL:+.6f} SOL ({report.pnl_pct:+.1f}%) | "
                f"held {report.held_seconds / 60:.1f}m"
            )

        await self._notify("notify_sell", report)
        return report

    async def reconcile(self) -> Optional[Position]:
        """
        Restore a position left over from a previous run.

        The snapshot is only trusted if the ledger still shows a balance of
        the token; ledger errors propagate so startup can abort.
        """
        if self.store is None:
            return None

        async with self._lock:
            snapshot = self.store.load()
            if snapshot is None:
                return None

            balance = await self.ledger.get_balance(self.executor.owner, snapshot.token_id)
            if balance <= 0:
                logger.warning(
                    f"Snapshot position {snapshot.token_id[:8]}... has no on-ledger balance, discarding"
                )
                self.store.clear()
                return None

            snapshot.quantity_held = balance
            self._activate(snapshot)
            logger.info(f"♻️ Restored position {snapshot.token_id[:8]}... with {balance} units")
            return snapshot

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _activate(self, position: Position) -> None:
        self._position = position
        self._seen[position.token_id] = position.opened_at
        self.history.clear()
        if self.store is not None:
            try:
                self.store.save(position)
            except OSError as e:
                logger.error(f"Failed to write position snapshot: {e}")
        if self.sampler is not None:
            self.sampler.start()

    def _deactivate(self) -> None:
        self._position = None
        self.history.clear()
        if self.store is not None:
            try:
                self.store.clear()
            except OSError as e:
                logger.error(f"Failed to clear position snapshot: {e}")

    async def _sample_entry_price(self, token_id: str, decimals: int) -> float:
        try:
            price = await self.oracle.get_price(token_id, decimals)
        except Exception as e:
            logger.warning(f"Entry price sample failed for {token_id[:8]}...: {e}")
            return 0.0
        return price or 0.0

    async def _notify(self, method: str, payload) -> None:
        if self.notifier is None:
            return
        try:
            await getattr(self.notifier, method)(payload)
        except Exception as e:
            logger.warning(f"Notification failed: {e}")
