"""
Telegram trade notifications.

Sends buy/sell events with realized P&L to the operator chat.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from ..constants import LAMPORTS_PER_SOL, SOLSCAN_TX_URL, TELEGRAM_API_BASE
from .models import CloseReport, Position

logger = logging.getLogger(__name__)


class TradeNotifier:
    def __init__(self, session: aiohttp.ClientSession, bot_token: Optional[str], chat_id: Optional[str]):
        self.session = session
        self.chat_id = chat_id
        self.enabled = bool(bot_token and chat_id)
        self.base_url = f"{TELEGRAM_API_BASE}/bot{bot_token}" if bot_token else None

        if not self.enabled:
            logger.info("Trade notifications disabled - TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID missing")

    async def send_message(self, text: str) -> bool:
        if not self.enabled:
            return False

        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            async with self.session.post(f"{self.base_url}/sendMessage", json=payload, timeout=aiohttp.ClientTimeout(total=10)) as resp:
                if resp.status != 200:
                    logger.error(f"Telegram send failed: status={resp.status}")
                    return False
                return True
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Telegram send exception: {e}")
            return False

    async def notify_buy(self, position: Position) -> bool:
        text = "🟢 <b>BUY</b>\n\n"
        text += f"<b>Token:</b> <code>{position.token_id}</code>\n"
        text += f"<b>Spent:</b> {position.base_amount_spent / LAMPORTS_PER_SOL:.4f} SOL\n"
        text += f"<b>Entry:</b> {position.entry_price:.10f} SOL\n"
        text += f'<a href="{SOLSCAN_TX_URL}{position.buy_tx_id}">Transaction</a>'
        return await self.send_message(text)

    async def notify_sell(self, report: CloseReport) -> bool:
        emoji = "💰" if report.pnl_lamports >= 0 else "🔻"
        text = f"{emoji} <b>SELL</b> ({report.reason})\n\n"
        text += f"<b>Token:</b> <code>{report.token_id}</code>\n"
        text += f"<b>Received:</b> {report.sol_received / LAMPORTS_PER_SOL:.4f} SOL\n"
        text += f"<b>PnL:</b> {report.pnl_lamports / LAMPORTS_PER_SOL:+.4f} SOL ({report.pnl_pct:+.1f}%)\n"
        text += f'<a href="{SOLSCAN_TX_URL}{report.tx_id}">Transaction</a>'
        return await self.send_message(text)
