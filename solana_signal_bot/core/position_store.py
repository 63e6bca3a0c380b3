from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from solana_signal_bot.core.models import Position

logger = logging.getLogger(__name__)


class PositionStore:
    """JSON snapshot of the held position, used to reconcile after a restart."""

    def __init__(self, path: str | Path) -> None:
        self.snapshot_path = Path(path)

    def save(self, position: Position) -> None:
        payload = {"ts": time.time(), "position": position.to_dict()}
        self._write_snapshot(payload)

    def load(self) -> Position | None:
        """Returns None if the file doesn't exist, is empty or is invalid."""
        if not self.snapshot_path.exists():
            logger.info("No position snapshot found, starting fresh")
            return None

        try:
            data = json.loads(self.snapshot_path.read_text(encoding="utf-8"))
            pos_data = data.get("position")
            if not pos_data:
                return None
            return Position.from_dict(pos_data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to load position snapshot: %s", e)
            return None

    def clear(self) -> None:
        if self.snapshot_path.exists():
            self._write_snapshot({"ts": 0, "position": None})
            logger.info("Position snapshot cleared")

    def _write_snapshot(self, payload: dict) -> None:
        self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        self.snapshot_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
