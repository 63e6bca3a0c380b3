"""Unit tests for settings loading and validation"""

import pytest
import yaml

from solana_signal_bot.config import Settings, load_settings
from solana_signal_bot.exceptions import ConfigurationException

ENV = {"SOLANA_PRIVATE_KEY": "key", "TELEGRAM_APP_API_ID": "12345", "TELEGRAM_APP_API_HASH": "hash"}


def write_config(tmp_path, data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


class TestLoadSettings:
    def test_sections_mapped(self, tmp_path):
        path = write_config(tmp_path, {
            "telegram_channels": ["alpha_calls", "beta"],
            "trading_settings": {
                "purchase_amount_sol": 0.05,
                "slippage_bps": 150,
                "reentry_policy": "unrestricted",
                "denylist": ["So11111111111111111111111111111111111111112"],
            },
            "verification": {"quiet_period_sec": 20, "recheck_count": 1, "link_policy": "reject"},
            "monitor": {"poll_interval_sec": 5, "history_size": 60},
            "logging": {"level": "debug"},
        })

        settings = load_settings(path, env=ENV)

        assert settings.TRACKED_CHANNELS == ["alpha_calls", "beta"]
        assert settings.purchase_amount_lamports == 50_000_000
        assert settings.BUY_SLIPPAGE_BPS == 150
        assert settings.REENTRY_POLICY == "unrestricted"
        assert settings.QUIET_PERIOD_SEC == 20
        assert settings.RECHECK_COUNT == 1
        assert settings.LINK_POLICY == "reject"
        assert settings.PRICE_HISTORY_SIZE == 60
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.PRIVATE_KEY == "key"
        assert settings.TELEGRAM_API_ID == 12345
        assert settings.TELEGRAM_API_HASH == "hash"

    def test_defaults(self, tmp_path):
        settings = load_settings(write_config(tmp_path, {"telegram_channels": ["alpha"]}), env=ENV)
        assert settings.REENTRY_POLICY == "once"
        assert settings.LINK_POLICY == "prefer"
        assert settings.LINK_HOSTS == ["dexscreener.com"]
        assert settings.QUIET_PERIOD_SEC == 30

    def test_env_overrides_rpc(self, tmp_path):
        path = write_config(tmp_path, {"telegram_channels": ["alpha"], "solana_rpc_endpoint": "https://a"})
        settings = load_settings(path, env={**ENV, "RPC_URL": "https://b"})
        assert settings.RPC_URL == "https://b"

    def test_config_path_from_env(self, tmp_path):
        path = write_config(tmp_path, {"telegram_channels": ["alpha"]})
        settings = load_settings(env={**ENV, "BOT_CONFIG_PATH": path})
        assert settings.TRACKED_CHANNELS == ["alpha"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationException):
            load_settings(str(tmp_path / "nope.yaml"), env=ENV)

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("telegram_channels: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationException):
            load_settings(str(path), env=ENV)

    def test_missing_credentials_fatal(self, tmp_path):
        path = write_config(tmp_path, {"telegram_channels": ["alpha"]})
        with pytest.raises(ConfigurationException) as exc:
            load_settings(path, env={})
        assert "SOLANA_PRIVATE_KEY" in str(exc.value)
        assert "TELEGRAM_APP_API_ID" in str(exc.value)
        assert "TELEGRAM_APP_API_HASH" in str(exc.value)

    def test_missing_channels_fatal(self, tmp_path):
        with pytest.raises(ConfigurationException) as exc:
            load_settings(write_config(tmp_path, {}), env=ENV)
        assert "telegram_channels" in str(exc.value)


class TestValidate:
    def test_valid(self):
        settings = Settings(PRIVATE_KEY="k", TELEGRAM_API_ID=1, TELEGRAM_API_HASH="h", TRACKED_CHANNELS=["a"])
        assert settings.validate() == []

    def test_bad_values(self):
        settings = Settings(
            PRIVATE_KEY="k",
            TELEGRAM_API_ID=1,
            TELEGRAM_API_HASH="h",
            TRACKED_CHANNELS=["a"],
            PURCHASE_AMOUNT_SOL=0,
            SELL_SLIPPAGE_BPS=20_000,
            REENTRY_POLICY="sometimes",
            LINK_POLICY="ignore",
            RECHECK_COUNT=0,
        )
        assert len(settings.validate()) == 5

    def test_non_numeric_api_id_rejected(self, tmp_path):
        path = write_config(tmp_path, {"telegram_channels": ["alpha"]})
        with pytest.raises(ConfigurationException) as exc:
            load_settings(path, env={**ENV, "TELEGRAM_APP_API_ID": "abc"})
        assert "TELEGRAM_APP_API_ID" in str(exc.value)
