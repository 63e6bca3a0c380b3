"""
Shared fixtures: in-memory stand-ins for the chat, swap, ledger and
signer collaborators.
"""

import asyncio
import os
import sys

import pytest

# Add repo root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from solana_signal_bot.config import Settings
from solana_signal_bot.core.models import SwapResult
from solana_signal_bot.core.tx_confirmer import TxResult, TxStatus
from solana_signal_bot.core.wallet import SignedTransaction


TOKEN = "9BB6NFEcjBCtnNLFko2FqVQBq8HHM13kCyYcdQbgpump"
OTHER_TOKEN = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"
OWNER = "Owner1111111111111111111111111111111111111"


class FakeChat:
    def __init__(self, recent=None, error=None):
        self.recent = recent or {}
        self.error = error
        self.calls = []

    async def fetch_recent(self, channel, count):
        self.calls.append((channel, count))
        if self.error:
            raise self.error
        return self.recent.get(channel, [])[:count]


class FakeSwapClient:
    def __init__(self, quote=None, swap_tx="c2lnbmVk"):
        self.quote = quote if quote is not None else {"outAmount": "1000", "priceImpactPct": "0.1"}
        self.swap_tx = swap_tx
        self.quote_calls = []

    async def get_quote(self, input_mint, output_mint, amount, slippage_bps=50):
        self.quote_calls.append((input_mint, output_mint, amount, slippage_bps))
        return self.quote

    async def build_swap(self, quote, user_public_key):
        return self.swap_tx


class FakeSigner:
    public_key = OWNER

    def __init__(self, tx_id="sig123"):
        self.tx_id = tx_id

    def sign(self, swap_transaction_b64):
        return SignedTransaction(tx_id=self.tx_id, raw=b"raw")


class FakeLedger:
    """
    Balances keyed by asset. A successful broadcast applies `fill` to the
    balances, standing in for the swap settling on-chain.
    """

    def __init__(self, balances=None, fill=None):
        self.balances = dict(balances or {})
        self.fill = dict(fill or {})
        self.broadcast_error = None
        self.settle_on_timeout = False
        self.confirm_result = None
        self.confirm_error = None
        self.transaction = {"err": None, "slot": 1}
        self.decimals = 6
        self.broadcasts = 0

    async def get_balance(self, owner, asset):
        return self.balances.get(asset, 0)

    async def get_decimals(self, mint):
        return self.decimals

    async def broadcast(self, raw):
        self.broadcasts += 1
        if self.broadcast_error is not None:
            if self.settle_on_timeout:
                self._settle()
            raise self.broadcast_error
        self._settle()
        return "sig123"

    async def confirm(self, tx_id):
        if self.confirm_error is not None:
            raise self.confirm_error
        if self.confirm_result is not None:
            return self.confirm_result
        return TxResult(signature=tx_id, status=TxStatus.CONFIRMED, slot=1)

    async def get_transaction(self, tx_id):
        return self.transaction

    def _settle(self):
        for asset, delta in self.fill.items():
            self.balances[asset] = self.balances.get(asset, 0) + delta


class FakeExecutor:
    owner = OWNER

    def __init__(self, ledger, result=None, error=None, gate=None):
        self.ledger = ledger
        self.result = result or SwapResult(tx_id="sig123", settled_amount=5_000_000, received_amount=5_000_000)
        self.error = error
        self.gate = gate
        self.calls = []

    async def execute(self, direction, input_asset, output_asset, amount, max_slippage_bps):
        self.calls.append((direction, input_asset, output_asset, amount))
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.result


class FakeOracle:
    def __init__(self, prices=None, error=None):
        self.prices = list(prices or [])
        self.error = error

    async def get_price(self, token_id, decimals):
        if self.error is not None:
            raise self.error
        if not self.prices:
            return None
        return self.prices.pop(0)


class FakeNotifier:
    def __init__(self):
        self.buys = []
        self.sells = []

    async def notify_buy(self, position):
        self.buys.append(position)

    async def notify_sell(self, report):
        self.sells.append(report)


class FakeStore:
    def __init__(self, position=None):
        self.position = position
        self.saved = []
        self.cleared = 0

    def save(self, position):
        self.saved.append(position)
        self.position = position

    def load(self):
        return self.position

    def clear(self):
        self.cleared += 1
        self.position = None


@pytest.fixture
def settings():
    return Settings(
        PRIVATE_KEY="test-key",
        TELEGRAM_API_ID=12345,
        TELEGRAM_API_HASH="test-hash",
        TELEGRAM_SESSION="test-session",
        TRACKED_CHANNELS=["alpha_calls"],
        QUIET_PERIOD_SEC=0,
        RECOVERY_GRACE_SEC=0,
        DENYLIST=["So11111111111111111111111111111111111111112"],
    )
