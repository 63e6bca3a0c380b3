"""
Exit Decision Engine

Momentum-reversal heuristic over the sampled price history:

1. Quick exit when current / entry >= 1.5
2. Sell when the 10m ratio has fallen below the 5m ratio
3. Sell when the 20m ratio has fallen below the 10m ratio
4. Otherwise hold

Ratios are current price over the sample nearest to now - offset.
"""

from typing import List, Optional

from ..constants import (
    LOOKBACK_LONG_SEC,
    LOOKBACK_MID_SEC,
    LOOKBACK_SHORT_SEC,
    QUICK_EXIT_RATIO,
    REASON_PRE_DROP_20M,
    REASON_QUICK_GAIN,
    REASON_SHORT_TERM_DROP,
)
from .models import ExitAction, ExitDecision, Position, PriceSample
from .price_history import nearest_sample

HOLD = ExitDecision(ExitAction.HOLD)


def _ratio(current: float, reference: Optional[PriceSample]) -> float:
    if reference is None or not reference.price:
        return 0.0
    return current / reference.price


def decide(history: List[PriceSample], position: Position) -> ExitDecision:
    if not history:
        return HOLD

    latest = history[-1]
    current = latest.price
    now = latest.timestamp

    if position.entry_price > 0 and current / position.entry_price >= QUICK_EXIT_RATIO:
        return ExitDecision(ExitAction.SELL, REASON_QUICK_GAIN)

    r5 = _ratio(current, nearest_sample(history, now - LOOKBACK_SHORT_SEC))
    r10 = _ratio(current, nearest_sample(history, now - LOOKBACK_MID_SEC))
    r20 = _ratio(current, nearest_sample(history, now - LOOKBACK_LONG_SEC))

    if r10 < r5 and r10 > 0:
        return ExitDecision(ExitAction.SELL, REASON_SHORT_TERM_DROP)
    if r20 < r10 and r10 > 0:
        return ExitDecision(ExitAction.SELL, REASON_PRE_DROP_20M)
    return HOLD
