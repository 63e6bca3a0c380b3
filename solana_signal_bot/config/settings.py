"""
Bot settings.

Secrets come from the environment (.env), everything else from a YAML or
JSON config file. Validation errors are fatal at startup.
"""

import os
import json
import yaml
import logging
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from pathlib import Path

from ..constants import DEFAULT_LINK_HOSTS, DEFAULT_RPC_URL, LAMPORTS_PER_SOL
from ..exceptions import ConfigurationException

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"

REENTRY_POLICIES = ("once", "unrestricted")
LINK_POLICIES = ("prefer", "reject")


@dataclass
class Settings:
    # Credentials & endpoints
    PRIVATE_KEY: Optional[str] = None
    RPC_URL: str = DEFAULT_RPC_URL
    TELEGRAM_API_ID: int = 0
    TELEGRAM_API_HASH: Optional[str] = None
    TELEGRAM_SESSION: Optional[str] = None  # StringSession; empty = interactive login
    TELEGRAM_BOT_TOKEN: Optional[str] = None  # notifications only
    TELEGRAM_CHAT_ID: Optional[str] = None
    API_TIMEOUT_SEC: float = 15.0

    # Chat
    TRACKED_CHANNELS: List[str] = field(default_factory=list)
    TELEGRAM_CONNECTION_RETRIES: int = 5

    # Trading
    PURCHASE_AMOUNT_SOL: float = 0.001
    BUY_SLIPPAGE_BPS: int = 100
    SELL_SLIPPAGE_BPS: int = 300
    COMPUTE_UNIT_PRICE_MICRO_LAMPORTS: int = 0
    DENYLIST: List[str] = field(default_factory=list)
    REENTRY_POLICY: str = "once"

    # Verification gate
    QUIET_PERIOD_SEC: float = 30.0
    RECHECK_COUNT: int = 2
    LINK_POLICY: str = "prefer"
    LINK_HOSTS: List[str] = field(default_factory=lambda: list(DEFAULT_LINK_HOSTS))

    # Price monitor
    PRICE_POLL_INTERVAL_SEC: float = 10.0
    PRICE_HISTORY_SIZE: int = 180  # 30 min at 10s
    SAMPLE_TOKEN_AMOUNT: float = 10_000.0

    # Execution
    CONFIRM_TIMEOUT_SEC: float = 60.0
    RECOVERY_GRACE_SEC: float = 5.0

    # Logging & state
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_SHOW_TIMESTAMPS: bool = True
    POSITION_SNAPSHOT_PATH: str = "data/position.json"

    @property
    def purchase_amount_lamports(self) -> int:
        return int(self.PURCHASE_AMOUNT_SOL * LAMPORTS_PER_SOL)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Map the sectioned config file onto flat settings."""
        trading = data.get("trading_settings", {}) or {}
        verification = data.get("verification", {}) or {}
        monitor = data.get("monitor", {}) or {}
        execution = data.get("execution", {}) or {}
        log_cfg = data.get("logging", {}) or {}
        defaults = cls()

        return cls(
            RPC_URL=data.get("solana_rpc_endpoint", defaults.RPC_URL),
            TRACKED_CHANNELS=list(data.get("telegram_channels", []) or []),
            PURCHASE_AMOUNT_SOL=float(trading.get("purchase_amount_sol", defaults.PURCHASE_AMOUNT_SOL)),
            BUY_SLIPPAGE_BPS=int(trading.get("slippage_bps", defaults.BUY_SLIPPAGE_BPS)),
            SELL_SLIPPAGE_BPS=int(trading.get("sell_slippage_bps", defaults.SELL_SLIPPAGE_BPS)),
            COMPUTE_UNIT_PRICE_MICRO_LAMPORTS=int(
                trading.get("compute_unit_price_micro_lamports", defaults.COMPUTE_UNIT_PRICE_MICRO_LAMPORTS)
            ),
            DENYLIST=list(trading.get("denylist", []) or []),
            REENTRY_POLICY=str(trading.get("reentry_policy", defaults.REENTRY_POLICY)),
            QUIET_PERIOD_SEC=float(verification.get("quiet_period_sec", defaults.QUIET_PERIOD_SEC)),
            RECHECK_COUNT=int(verification.get("recheck_count", defaults.RECHECK_COUNT)),
            LINK_POLICY=str(verification.get("link_policy", defaults.LINK_POLICY)),
            LINK_HOSTS=list(verification.get("link_hosts", defaults.LINK_HOSTS) or []),
            PRICE_POLL_INTERVAL_SEC=float(monitor.get("poll_interval_sec", defaults.PRICE_POLL_INTERVAL_SEC)),
            PRICE_HISTORY_SIZE=int(monitor.get("history_size", defaults.PRICE_HISTORY_SIZE)),
            SAMPLE_TOKEN_AMOUNT=float(monitor.get("sample_token_amount", defaults.SAMPLE_TOKEN_AMOUNT)),
            CONFIRM_TIMEOUT_SEC=float(execution.get("confirm_timeout_sec", defaults.CONFIRM_TIMEOUT_SEC)),
            RECOVERY_GRACE_SEC=float(execution.get("recovery_grace_sec", defaults.RECOVERY_GRACE_SEC)),
            LOG_LEVEL=str(log_cfg.get("level", defaults.LOG_LEVEL)).upper(),
            LOG_DIR=str(log_cfg.get("dir", defaults.LOG_DIR)),
            LOG_SHOW_TIMESTAMPS=bool(log_cfg.get("show_timestamps", defaults.LOG_SHOW_TIMESTAMPS)),
            POSITION_SNAPSHOT_PATH=str(data.get("position_snapshot_path", defaults.POSITION_SNAPSHOT_PATH)),
        )

    def apply_env(self, env: Optional[Dict[str, str]] = None) -> "Settings":
        """Overlay secrets and endpoint overrides from the environment."""
        env = os.environ if env is None else env
        self.PRIVATE_KEY = env.get("SOLANA_PRIVATE_KEY") or self.PRIVATE_KEY
        self.RPC_URL = env.get("RPC_URL") or self.RPC_URL
        if env.get("TELEGRAM_APP_API_ID"):
            try:
                self.TELEGRAM_API_ID = int(env["TELEGRAM_APP_API_ID"])
            except ValueError:
                self.TELEGRAM_API_ID = -1
        self.TELEGRAM_API_HASH = env.get("TELEGRAM_APP_API_HASH") or self.TELEGRAM_API_HASH
        self.TELEGRAM_SESSION = env.get("TELEGRAM_STRING_SESSION") or self.TELEGRAM_SESSION
        self.TELEGRAM_BOT_TOKEN = env.get("TELEGRAM_BOT_TOKEN") or self.TELEGRAM_BOT_TOKEN
        self.TELEGRAM_CHAT_ID = env.get("TELEGRAM_CHAT_ID") or self.TELEGRAM_CHAT_ID
        if env.get("LOG_LEVEL"):
            self.LOG_LEVEL = env["LOG_LEVEL"].upper()
        return self

    def validate(self) -> List[str]:
        """Validate settings, return list of errors"""
        errors = []

        if not self.PRIVATE_KEY:
            errors.append("SOLANA_PRIVATE_KEY is not set")
        if self.TELEGRAM_API_ID <= 0:
            errors.append("TELEGRAM_APP_API_ID is not set or not a number")
        if not self.TELEGRAM_API_HASH:
            errors.append("TELEGRAM_APP_API_HASH is not set")
        if not self.TRACKED_CHANNELS:
            errors.append("telegram_channels must list at least one channel")

        if self.PURCHASE_AMOUNT_SOL <= 0:
            errors.append("purchase_amount_sol must be > 0")
        if not 0 < self.BUY_SLIPPAGE_BPS <= 10_000 or not 0 < self.SELL_SLIPPAGE_BPS <= 10_000:
            errors.append("slippage_bps must be between 1 and 10000")
        if self.REENTRY_POLICY not in REENTRY_POLICIES:
            errors.append(f"reentry_policy must be one of {REENTRY_POLICIES}")
        if self.LINK_POLICY not in LINK_POLICIES:
            errors.append(f"link_policy must be one of {LINK_POLICIES}")
        if self.RECHECK_COUNT < 1:
            errors.append("recheck_count must be >= 1")
        if self.PRICE_HISTORY_SIZE < 1:
            errors.append("history_size must be >= 1")
        if self.SAMPLE_TOKEN_AMOUNT <= 0:
            errors.append("sample_token_amount must be > 0")

        return errors


def _load_file(path: Path) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        if path.suffix in ['.yaml', '.yml']:
            return yaml.safe_load(f) or {}
        return json.load(f)


def load_settings(
    config_path: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> Settings:
    """
    Build validated settings from the config file and environment.

    Raises:
        ConfigurationException: file unreadable or any validation error
    """
    env = os.environ if env is None else env
    path = Path(config_path or env.get("BOT_CONFIG_PATH") or DEFAULT_CONFIG_PATH)

    if not path.exists():
        raise ConfigurationException("Config file not found", path=str(path))

    try:
        data = _load_file(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationException(f"Cannot parse config file: {e}", path=str(path)) from e

    settings = Settings.from_dict(data).apply_env(env)
    errors = settings.validate()
    if errors:
        raise ConfigurationException("Invalid configuration: " + "; ".join(errors), path=str(path))

    logger.info(f"Config loaded from {path} ({len(settings.TRACKED_CHANNELS)} channels)")
    return settings
