"""
Verification Gate

Waits out a quiet period, re-reads the newest messages of the source
channel and only lets a candidate through if it is still posted there.
Fails closed: any channel error means "don't act".
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence

from .address_extractor import AddressExtractor

logger = logging.getLogger(__name__)


class RecentMessageSource(Protocol):
    async def fetch_recent(self, channel: str, count: int) -> Sequence[str]: ...


class VerificationGate:
    def __init__(
        self,
        chat: RecentMessageSource,
        extractor: AddressExtractor,
        quiet_period_sec: float = 30.0,
        recheck_count: int = 2,
    ):
        self.chat = chat
        self.extractor = extractor
        self.quiet_period_sec = quiet_period_sec
        self.recheck_count = recheck_count

    async def verify(self, candidate: str, channel: str, signal_time: float) -> Optional[str]:
        """
        Returns the candidate if it survives the quiet period, else None.

        Suspends without blocking other verifications running concurrently.
        """
        logger.info(
            f"⏳ Waiting {self.quiet_period_sec:.0f}s before re-verifying {candidate[:8]}... in '{channel}'"
        )
        await asyncio.sleep(self.quiet_period_sec)

        try:
            texts = await self.chat.fetch_recent(channel, self.recheck_count)
        except Exception as e:
            logger.warning(f"Could not fetch recent messages from '{channel}': {e}")
            return None

        if not texts:
            logger.info(f"No recent messages returned for '{channel}', skipping {candidate[:8]}...")
            return None

        found = [self.extractor.extract(text) for text in texts]
        logger.debug(f"Re-fetched addresses in '{channel}': {found}")

        if candidate not in found:
            logger.info(f"🚫 REJECT {candidate[:8]}... no longer present in '{channel}'")
            return None

        logger.info(f"✅ VERIFIED {candidate} in '{channel}' (signal at {signal_time:.0f})")
        return candidate
