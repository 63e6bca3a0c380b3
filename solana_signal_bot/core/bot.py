"""
Signal bot coordinator.

Message flow:  chat → extractor → verification gate → position manager (buy)
Monitor flow:  price sampler → exit engine → position manager (sell)

Each inbound candidate is verified in its own task, so one quiet period
never delays another signal.
"""

import asyncio
import logging
from typing import Optional, Set

from ..exceptions import BotException, PositionRejected
from .address_extractor import AddressExtractor
from .models import ChatMessage, Position
from .position_manager import PositionManager
from .price_sampler import PriceSampler
from .verification import VerificationGate

logger = logging.getLogger(__name__)


class SignalBot:
    def __init__(
        self,
        chat,
        extractor: AddressExtractor,
        gate: VerificationGate,
        manager: PositionManager,
        sampler: PriceSampler,
    ):
        self.chat = chat
        self.extractor = extractor
        self.gate = gate
        self.manager = manager
        self.sampler = sampler
        self._tasks: Set[asyncio.Task] = set()

        manager.attach_sampler(sampler)

    async def start(self) -> None:
        restored = await self.manager.reconcile()
        if restored:
            logger.info(f"Resuming monitoring of {restored.token_id}")

        self.chat.on_message(self.on_message)
        await self.chat.start()
        logger.info("🚀 Signal bot started")

    async def stop(self) -> None:
        await self.sampler.stop()

        # In-flight verifications are abandoned
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        await self.chat.stop()
        logger.info("Signal bot stopped")

    async def on_message(self, message: ChatMessage) -> None:
        task = asyncio.create_task(self.process_message(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def process_message(self, message: ChatMessage) -> Optional[Position]:
        candidate = self.extractor.extract(message.text)
        if candidate is None:
            return None

        logger.info(f"🔭 SIGNAL {candidate} from '{message.channel}'")

        verified = await self.gate.verify(candidate, message.channel, message.sent_at)
        if verified is None:
            return None

        try:
            return await self.manager.attempt_open(verified, signal_at=message.sent_at)
        except PositionRejected as e:
            logger.info(f"🚫 REJECT open of {verified[:8]}...: {e}")
        except BotException as e:
            logger.error(f"❌ BUY failed for {verified[:8]}...: {e}")
        return None
