"""
Unit tests for price sampling

Tests:
1. PriceOracle quote → price conversion
2. Sampler tick is a no-op while empty or without data
3. An exit signal closes the position
"""

import asyncio

from solana_signal_bot.constants import WSOL_MINT
from solana_signal_bot.core.models import ExitAction, SlotState
from solana_signal_bot.core.position_manager import PositionManager
from solana_signal_bot.core.price_sampler import PriceOracle, PriceSampler
from solana_signal_bot.exceptions import OnChainFailure

from conftest import FakeExecutor, FakeLedger, FakeOracle, FakeSwapClient, TOKEN


class TestPriceOracle:
    def test_price_per_unit(self):
        # 10k tokens → 0.05 SOL
        client = FakeSwapClient(quote={"outAmount": "50000000"})
        oracle = PriceOracle(client, sample_token_amount=10_000)

        price = asyncio.run(oracle.get_price(TOKEN, 6))

        assert price == 0.05 / 10_000
        assert client.quote_calls == [(TOKEN, WSOL_MINT, 10_000 * 10 ** 6, 50)]

    def test_decimals_scale_quote_amount(self):
        client = FakeSwapClient(quote={"outAmount": "50000000"})
        oracle = PriceOracle(client, sample_token_amount=10_000)
        asyncio.run(oracle.get_price(TOKEN, 9))
        assert client.quote_calls[0][2] == 10_000 * 10 ** 9

    def test_no_data(self):
        for quote in ({}, {"error": "No routes found"}, {"outAmount": "0"}):
            oracle = PriceOracle(FakeSwapClient(quote=quote))
            assert asyncio.run(oracle.get_price(TOKEN, 6)) is None


def make_held(settings, entry_price=1.0, sampler_prices=()):
    ledger = FakeLedger(balances={TOKEN: 5_000_000})
    executor = FakeExecutor(ledger)
    manager = PositionManager(settings, executor, ledger, FakeOracle(prices=[entry_price]))
    sampler = PriceSampler(manager, FakeOracle(prices=list(sampler_prices)), interval_sec=0)
    return manager, sampler, executor


class TestPriceSampler:
    def test_tick_noop_when_empty(self, settings):
        manager, sampler, executor = make_held(settings, sampler_prices=[1.0])
        assert asyncio.run(sampler.tick()) is None
        assert sampler.oracle.prices == [1.0]

    def test_missing_price_skipped(self, settings):
        manager, sampler, _ = make_held(settings)

        async def scenario():
            await manager.attempt_open(TOKEN)
            return await sampler.tick()

        assert asyncio.run(scenario()) is None
        # Only the entry sample, no zero placeholder
        assert [s.price for s in manager.history.samples()] == [1.0]

    def test_sample_error_skipped(self, settings):
        manager, sampler, _ = make_held(settings)
        sampler.oracle = FakeOracle(error=asyncio.TimeoutError())

        async def scenario():
            await manager.attempt_open(TOKEN)
            return await sampler.tick()

        assert asyncio.run(scenario()) is None
        assert manager.state is SlotState.HELD

    def test_hold_appends_sample(self, settings):
        manager, sampler, _ = make_held(settings, sampler_prices=[1.1])

        async def scenario():
            await manager.attempt_open(TOKEN)
            return await sampler.tick()

        decision = asyncio.run(scenario())
        assert decision.action is ExitAction.HOLD
        assert [s.price for s in manager.history.samples()] == [1.0, 1.1]
        assert manager.state is SlotState.HELD

    def test_sell_signal_closes_position(self, settings):
        manager, sampler, executor = make_held(settings, sampler_prices=[1.6])

        async def scenario():
            await manager.attempt_open(TOKEN)
            return await sampler.tick()

        decision = asyncio.run(scenario())
        assert decision.reason == "quick gain"
        assert manager.state is SlotState.EMPTY
        assert len(executor.calls) == 2

    def test_failed_sell_retried_next_tick(self, settings):
        manager, sampler, executor = make_held(settings, sampler_prices=[1.6, 1.7])

        async def scenario():
            await manager.attempt_open(TOKEN)
            executor.error = OnChainFailure("slippage exceeded")
            first = await sampler.tick()
            held_after_failure = manager.is_held
            executor.error = None
            second = await sampler.tick()
            return first, held_after_failure, second

        first, held_after_failure, second = asyncio.run(scenario())
        assert first.should_sell and second.should_sell
        assert held_after_failure
        assert manager.state is SlotState.EMPTY

    def test_start_stop(self, settings):
        manager, sampler, _ = make_held(settings)

        async def scenario():
            sampler.start()
            sampler.start()
            running = sampler.running
            await sampler.stop()
            return running

        assert asyncio.run(scenario())
        assert not sampler.running
