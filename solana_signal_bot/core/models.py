from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any


class SlotState(str, Enum):
    EMPTY = "EMPTY"
    HELD = "HELD"


class Direction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class ExitAction(str, Enum):
    HOLD = "HOLD"
    SELL = "SELL"


@dataclass(frozen=True)
class ChatMessage:
    text: str
    channel: str
    sent_at: float
    message_id: int = 0


@dataclass(frozen=True)
class PriceSample:
    timestamp: float
    price: float


@dataclass
class Position:
    token_id: str
    opened_at: float
    signal_at: float
    entry_price: float
    quantity_held: int  # raw units, read back from the ledger
    base_amount_spent: int  # lamports
    decimals: int = 6
    buy_tx_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Position":
        return cls(
            token_id=data["token_id"],
            opened_at=float(data.get("opened_at", 0.0)),
            signal_at=float(data.get("signal_at", 0.0)),
            entry_price=float(data.get("entry_price", 0.0)),
            quantity_held=int(data.get("quantity_held", 0)),
            base_amount_spent=int(data.get("base_amount_spent", 0)),
            decimals=int(data.get("decimals", 6)),
            buy_tx_id=data.get("buy_tx_id", ""),
        )


@dataclass(frozen=True)
class SwapResult:
    tx_id: str
    settled_amount: int  # post-trade balance of the output asset
    received_amount: int  # settled_amount minus the pre-trade balance
    recovered: bool = False  # confirmed by the timeout-recovery check


@dataclass(frozen=True)
class ExitDecision:
    action: ExitAction
    reason: str = ""

    @property
    def should_sell(self) -> bool:
        return self.action is ExitAction.SELL


@dataclass(frozen=True)
class CloseReport:
    token_id: str
    reason: str
    tx_id: str
    sol_received: int  # lamports
    base_amount_spent: int  # lamports
    held_seconds: float

    @property
    def pnl_lamports(self) -> int:
        return self.sol_received - self.base_amount_spent

    @property
    def pnl_pct(self) -> float:
        if not self.base_amount_spent:
            return 0.0
        return (self.sol_received / self.base_amount_spent - 1.0) * 100
