import asyncio
import logging
import platform
import signal
import sys

import aiohttp
from solana.rpc.async_api import AsyncClient

from solana_signal_bot.config import Settings, load_settings
from solana_signal_bot.core.address_extractor import AddressExtractor
from solana_signal_bot.core.bot import SignalBot
from solana_signal_bot.core.executor import SwapExecutor
from solana_signal_bot.core.jupiter_client import JupiterClient
from solana_signal_bot.core.ledger import SolanaLedger
from solana_signal_bot.core.position_manager import PositionManager
from solana_signal_bot.core.position_store import PositionStore
from solana_signal_bot.core.price_sampler import PriceOracle, PriceSampler
from solana_signal_bot.core.telegram_listener import TelegramChannelListener
from solana_signal_bot.core.telegram_notifier import TradeNotifier
from solana_signal_bot.core.verification import VerificationGate
from solana_signal_bot.core.wallet import WalletManager
from solana_signal_bot.exceptions import ConfigurationException, NetworkException
from solana_signal_bot.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def build_bot(settings: Settings, session: aiohttp.ClientSession, rpc: AsyncClient) -> SignalBot:
    wallet = WalletManager(settings.PRIVATE_KEY)
    ledger = SolanaLedger(rpc, confirm_timeout_sec=settings.CONFIRM_TIMEOUT_SEC)
    jupiter = JupiterClient(
        session,
        compute_unit_price_micro_lamports=settings.COMPUTE_UNIT_PRICE_MICRO_LAMPORTS,
        timeout_sec=settings.API_TIMEOUT_SEC,
    )
    executor = SwapExecutor(jupiter, ledger, wallet, recovery_grace_sec=settings.RECOVERY_GRACE_SEC)
    oracle = PriceOracle(jupiter, sample_token_amount=settings.SAMPLE_TOKEN_AMOUNT)

    manager = PositionManager(
        settings,
        executor,
        ledger,
        oracle,
        store=PositionStore(settings.POSITION_SNAPSHOT_PATH),
        notifier=TradeNotifier(session, settings.TELEGRAM_BOT_TOKEN, settings.TELEGRAM_CHAT_ID),
    )
    sampler = PriceSampler(manager, oracle, interval_sec=settings.PRICE_POLL_INTERVAL_SEC)

    chat = TelegramChannelListener(settings)
    extractor = AddressExtractor(settings.LINK_HOSTS, settings.LINK_POLICY)
    gate = VerificationGate(chat, extractor, settings.QUIET_PERIOD_SEC, settings.RECHECK_COUNT)

    return SignalBot(chat, extractor, gate, manager, sampler)


async def main() -> int:
    try:
        settings = load_settings()
    except ConfigurationException as e:
        print(f"🔥 Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(settings)
    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    if platform.system() != "Windows":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, shutdown_event.set)

    async with aiohttp.ClientSession() as session:
        rpc = AsyncClient(settings.RPC_URL)
        try:
            bot = build_bot(settings, session, rpc)
            await bot.start()
        except (ConfigurationException, NetworkException) as e:
            logger.error(f"🔥 Startup failed: {e}")
            await rpc.close()
            return 1

        try:
            await shutdown_event.wait()
        finally:
            logger.info("Initiating graceful shutdown...")
            await bot.stop()
            await rpc.close()

    logger.info("Shutdown complete")
    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("👋 Bot stopped by user.")


if __name__ == "__main__":
    run()
