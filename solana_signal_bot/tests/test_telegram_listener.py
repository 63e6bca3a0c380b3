"""Unit tests for the user-session channel listener (no network)"""

import asyncio
import logging
from datetime import datetime, timezone
from types import SimpleNamespace

from solana_signal_bot.core.address_extractor import AddressExtractor
from solana_signal_bot.core.telegram_listener import TelegramChannelListener
from solana_signal_bot.core.verification import VerificationGate

from conftest import OTHER_TOKEN, TOKEN

ALPHA_ID = -1001
OTHER_ID = -1002


class FakeTelegramClient:
    """Dialogs plus a live message list per channel, newest last."""

    def __init__(self):
        self.alpha = SimpleNamespace(username="alpha_calls")
        self.dialogs = [
            SimpleNamespace(id=ALPHA_ID, title="Alpha Calls", entity=self.alpha),
            SimpleNamespace(id=OTHER_ID, title="Random Chat", entity=SimpleNamespace(username=None)),
        ]
        self.messages = {ALPHA_ID: []}
        self.handlers = []
        self.session = SimpleNamespace(save=lambda: "saved-session")
        self.disconnected = False

    async def start(self):
        return self

    async def disconnect(self):
        self.disconnected = True

    async def iter_dialogs(self):
        for dialog in self.dialogs:
            yield dialog

    def add_event_handler(self, callback, event):
        self.handlers.append(callback)

    def post(self, text):
        msgs = self.messages[ALPHA_ID]
        msgs.append(SimpleNamespace(id=len(msgs) + 1, message=text))
        return msgs[-1]

    def delete(self, message):
        self.messages[ALPHA_ID].remove(message)

    async def get_messages(self, entity, limit):
        assert entity is self.alpha
        return list(reversed(self.messages[ALPHA_ID]))[:limit]


def new_message_event(text, chat_id=ALPHA_ID, message_id=1):
    return SimpleNamespace(
        chat_id=chat_id,
        raw_text=text,
        id=message_id,
        message=SimpleNamespace(date=datetime(2024, 1, 1, tzinfo=timezone.utc)),
    )


def make_listener(settings):
    client = FakeTelegramClient()
    listener = TelegramChannelListener(settings, client=client)
    received = []

    async def handler(message):
        received.append(message)

    listener.on_message(handler)
    return listener, client, received


class TestTelegramChannelListener:
    def test_start_resolves_tracked_channels(self, settings):
        listener, client, _ = make_listener(settings)
        asyncio.run(listener.start())

        assert listener._entities == {"alpha_calls": client.alpha}
        assert client.handlers == [listener.handle_new_message]

    def test_tracked_message_delivered(self, settings):
        listener, _, received = make_listener(settings)

        async def scenario():
            await listener.start()
            await listener.handle_new_message(new_message_event(f"CA {TOKEN}", message_id=7))

        asyncio.run(scenario())
        assert len(received) == 1
        assert received[0].channel == "alpha_calls"
        assert received[0].text == f"CA {TOKEN}"
        assert received[0].message_id == 7
        assert received[0].sent_at == datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp()

    def test_untracked_chat_ignored(self, settings):
        listener, _, received = make_listener(settings)

        async def scenario():
            await listener.start()
            await listener.handle_new_message(new_message_event(TOKEN, chat_id=OTHER_ID))

        asyncio.run(scenario())
        assert received == []

    def test_fetch_recent_newest_first(self, settings):
        listener, client, _ = make_listener(settings)
        for text in ("one", "two", "three"):
            client.post(text)

        async def scenario():
            await listener.start()
            return await listener.fetch_recent("@Alpha_Calls", 2)

        assert asyncio.run(scenario()) == ["three", "two"]

    def test_unresolved_channel_returns_nothing(self, settings):
        listener, _, _ = make_listener(settings)
        assert asyncio.run(listener.fetch_recent("nowhere", 2)) == []

    def test_stop_disconnects(self, settings):
        listener, client, _ = make_listener(settings)
        asyncio.run(listener.stop())
        assert client.disconnected


class TestRetractedCalls:
    """The gate sees the channel's live state, not what was once posted"""

    def _verify_after(self, settings, retract):
        listener, client, _ = make_listener(settings)
        gate = VerificationGate(listener, AddressExtractor(), quiet_period_sec=0, recheck_count=2)

        async def scenario():
            await listener.start()
            call = client.post(f"CA {TOKEN}")
            retract(client, call)
            return await gate.verify(TOKEN, "alpha_calls", 1.0)

        return asyncio.run(scenario())

    def test_deleted_call_fails_verification(self, settings):
        def delete(client, call):
            client.delete(call)

        assert self._verify_after(settings, delete) is None

    def test_edited_call_fails_verification(self, settings):
        def edit(client, call):
            call.message = f"CA {OTHER_TOKEN}"

        assert self._verify_after(settings, edit) is None

    def test_live_call_passes(self, settings):
        def keep(client, call):
            client.post("gm")

        assert self._verify_after(settings, keep) == TOKEN


class TestListenerLogging:
    def test_logs_under_module_logger(self, settings, caplog):
        listener, _, _ = make_listener(settings)
        with caplog.at_level(logging.WARNING, logger="solana_signal_bot.core.telegram_listener"):
            asyncio.run(listener.fetch_recent("nowhere", 2))

        assert [r.name for r in caplog.records] == ["solana_signal_bot.core.telegram_listener"]
