from __future__ import annotations

import logging
from pathlib import Path

from solana_signal_bot.config import Settings

GREY = "\x1b[90m"
GREEN = "\x1b[92m"
CYAN = "\x1b[96m"
RED = "\x1b[91m"
MAGENTA = "\x1b[95m"
YELLOW = "\x1b[93m"
RESET = "\x1b[0m"

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
NOISY_LOGGERS = ("httpx", "httpcore", "aiohttp", "asyncio", "urllib3", "websockets", "telethon")

# First match wins; only applied below WARNING
HIGHLIGHTS = (
    (GREEN, ("BUY", "VERIFIED")),
    (CYAN, ("SIGNAL", "🔭")),
    (MAGENTA, ("SELL", "EXIT", "💰")),
    (GREY, ("REJECT", "🚫")),
)


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors trade lifecycle events."""

    DATE_FMT = "%H:%M:%S"

    def __init__(self, show_timestamps: bool = True) -> None:
        super().__init__()
        fmt = "%(asctime)s %(message)s" if show_timestamps else "%(message)s"
        self._formatters = {
            color: logging.Formatter(f"{color}{fmt}{RESET}", datefmt=self.DATE_FMT)
            for color in (GREY, GREEN, CYAN, RED, MAGENTA, YELLOW)
        }

    @staticmethod
    def pick_color(record: logging.LogRecord) -> str:
        if record.levelno >= logging.ERROR:
            return RED
        if record.levelno >= logging.WARNING:
            return YELLOW

        msg = str(record.msg)
        for color, keywords in HIGHLIGHTS:
            if any(k in msg for k in keywords):
                return color
        return GREY

    def format(self, record: logging.LogRecord) -> str:
        return self._formatters[self.pick_color(record)].format(record)


def setup_logging(settings: Settings) -> None:
    """Plain-text file log under LOG_DIR plus a colored console log."""
    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_dir / "bot.log", encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColoredFormatter(settings.LOG_SHOW_TIMESTAMPS))

    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL)
    # Avoid duplicate output on re-init
    root.handlers.clear()
    root.addHandler(file_handler)
    root.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
