from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from telethon import TelegramClient, events
from telethon.sessions import StringSession

from solana_signal_bot.config import Settings
from solana_signal_bot.core.models import ChatMessage

logger = logging.getLogger(__name__)

MessageHandler = Callable[[ChatMessage], Awaitable[None]]


class TelegramChannelListener:
    """
    Chat collaborator over an MTProto user session.

    Tracked channels are resolved from the account's dialogs by title or
    @username, so the account only has to be subscribed, not an admin.
    fetch_recent() asks Telegram for the channel's current newest messages,
    which means deleted or edited posts are seen as such.
    """

    def __init__(self, settings: Settings, client: TelegramClient | None = None) -> None:
        self.settings = settings
        self.tracked = {self._normalize(c) for c in settings.TRACKED_CHANNELS}
        self.client = client or TelegramClient(
            StringSession(settings.TELEGRAM_SESSION or ""),
            settings.TELEGRAM_API_ID,
            settings.TELEGRAM_API_HASH,
            connection_retries=settings.TELEGRAM_CONNECTION_RETRIES,
            request_retries=settings.TELEGRAM_CONNECTION_RETRIES,
            timeout=10,
        )

        self._handler: MessageHandler | None = None
        self._entities: dict[str, Any] = {}  # normalized name → entity
        self._names: dict[int, str] = {}  # marked peer id → normalized name

    @staticmethod
    def _normalize(name: str) -> str:
        return name.strip().lstrip("@").lower()

    def on_message(self, handler: MessageHandler) -> None:
        self._handler = handler

    async def start(self) -> None:
        # Prompts for phone/code on the console when there is no saved session
        await self.client.start()
        if not self.settings.TELEGRAM_SESSION:
            print("Save this as TELEGRAM_STRING_SESSION to skip login next time:")
            print(self.client.session.save())

        await self.resolve_channels()
        missing = self.tracked - set(self._entities)
        if missing:
            logger.warning("Channels not found among dialogs: %s", ", ".join(sorted(missing)))

        self.client.add_event_handler(
            self.handle_new_message, events.NewMessage(chats=list(self._entities.values()))
        )
        logger.info("📡 Listening to %d channel(s): %s", len(self._entities), ", ".join(self._entities))

    async def stop(self) -> None:
        await self.client.disconnect()

    async def resolve_channels(self) -> None:
        async for dialog in self.client.iter_dialogs():
            username = getattr(dialog.entity, "username", None)
            for name in (dialog.title, username):
                if name and self._normalize(name) in self.tracked:
                    key = self._normalize(name)
                    self._entities[key] = dialog.entity
                    self._names[dialog.id] = key
                    break

    async def fetch_recent(self, channel: str, count: int) -> list[str]:
        """Newest `count` message texts of a tracked channel, newest first."""
        entity = self._entities.get(self._normalize(channel))
        if entity is None:
            logger.warning("fetch_recent for unresolved channel '%s'", channel)
            return []
        messages = await self.client.get_messages(entity, limit=count)
        return [m.message or "" for m in messages]

    async def handle_new_message(self, event) -> None:
        channel = self._names.get(event.chat_id)
        text = event.raw_text or ""
        if channel is None or not text or self._handler is None:
            return

        logger.info("🔭 SIGNAL candidate message in '%s'", channel)
        message = ChatMessage(
            text=text,
            channel=channel,
            sent_at=event.message.date.timestamp(),
            message_id=event.id,
        )
        await self._handler(message)
