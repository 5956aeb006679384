"""
Tests for Razor DEX configuration and the command line interface

Covers:
  - TOML loading, defaults and environment overrides
  - Validation and conversion to the runtime registry config
  - razordex CLI commands
"""

import json
import logging

import pytest
from click.testing import CliRunner

from razordex.cli.dex import cli
from razordex.config import DexConfig, load_config
from razordex.constants import DEFAULT_SWAP_FEE_BPS
from razordex.exceptions import ConfigurationError
from razordex.logger import LogManager

CONFIG_TOML = """
[registry]
admin = "0xadmin"
fee_to = "0xtreasury"
swap_fee_bps = 25
protocol_fee_enabled = true

[logging]
level = "debug"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "RAZORDEX_CONFIG", "RAZORDEX_ADMIN", "RAZORDEX_FEE_TO", "RAZORDEX_SWAP_FEE_BPS",
        "RAZORDEX_PROTOCOL_FEE_DENOMINATOR", "RAZORDEX_PROTOCOL_FEE_ENABLED",
        "RAZORDEX_PAUSED", "RAZORDEX_LOG_LEVEL", "RAZORDEX_LOG_FILE",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def quiet_logs():
    root = logging.getLogger()
    level = root.level
    yield ["--log-level", "ERROR"]
    root.setLevel(level)


@pytest.fixture
def restore_logging():
    level = logging.getLogger().level
    yield
    LogManager().configure(file_output=False, force=True)
    logging.getLogger().setLevel(level)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(CONFIG_TOML)
    return path


class TestDexConfig:

    def test_defaults(self):
        cfg = DexConfig()
        assert cfg.registry.swap_fee_bps == DEFAULT_SWAP_FEE_BPS
        assert cfg.logging.level == "INFO"
        assert not cfg.registry.paused

    def test_from_file(self, config_file):
        cfg = DexConfig.from_file(str(config_file))
        assert cfg.registry.admin == "0xadmin"
        assert cfg.registry.swap_fee_bps == 25
        assert cfg.registry.protocol_fee_enabled
        assert cfg.logging.level == "DEBUG"

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = DexConfig.from_file(str(tmp_path / "absent.toml"))
        assert cfg.registry.admin == ""

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[registry\nadmin = ")
        with pytest.raises(ConfigurationError):
            DexConfig.from_file(str(path))

    def test_env_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("RAZORDEX_SWAP_FEE_BPS", "10")
        monkeypatch.setenv("RAZORDEX_PAUSED", "true")
        monkeypatch.setenv("RAZORDEX_LOG_LEVEL", "warning")
        cfg = DexConfig.from_file(str(config_file))
        assert cfg.registry.swap_fee_bps == 10
        assert cfg.registry.paused is True
        assert cfg.logging.level == "WARNING"

    def test_load_config_env_path(self, config_file, monkeypatch):
        monkeypatch.setenv("RAZORDEX_CONFIG", str(config_file))
        assert load_config().registry.admin == "0xadmin"

    def test_validate_requires_admin(self):
        with pytest.raises(ConfigurationError, match="admin"):
            DexConfig().validate()

    @pytest.mark.parametrize("fee", [-1, 10_000])
    def test_validate_fee_range(self, fee):
        cfg = DexConfig.from_dict({"registry": {"admin": "0xadmin", "swap_fee_bps": fee}})
        with pytest.raises(ConfigurationError):
            cfg.validate()

    def test_validate_log_level(self):
        cfg = DexConfig.from_dict({"registry": {"admin": "0xadmin"}, "logging": {"level": "LOUD"}})
        with pytest.raises(ConfigurationError):
            cfg.validate()

    def test_to_registry_config(self, config_file):
        rc = DexConfig.from_file(str(config_file)).to_registry_config()
        assert rc.admin == "0xadmin"
        assert rc.fee_to == "0xtreasury"
        assert rc.swap_fee_bps == 25

    def test_fee_to_falls_back_to_admin(self):
        rc = DexConfig.from_dict({"registry": {"admin": "0xadmin"}}).to_registry_config()
        assert rc.fee_to == "0xadmin"

    def test_to_dict(self, config_file):
        data = DexConfig.from_file(str(config_file)).to_dict()
        assert data["registry"]["swap_fee_bps"] == 25
        assert data["logging"]["level"] == "DEBUG"


class TestCLI:

    def test_quote_out(self):
        result = CliRunner().invoke(cli, ["quote-out", "1000", "10000", "10000"])
        assert result.exit_code == 0
        assert result.output.strip() == "906"

    def test_quote_in(self):
        result = CliRunner().invoke(cli, ["quote-in", "906", "10000", "10000"])
        assert result.exit_code == 0
        assert result.output.strip() == "1000"

    def test_quote_error(self):
        result = CliRunner().invoke(cli, ["quote-out", "0", "10000", "10000"])
        assert result.exit_code != 0
        assert "[E6]" in result.output

    def test_show_config(self, config_file, quiet_logs):
        result = CliRunner().invoke(cli, quiet_logs + ["show-config", "--config", str(config_file)])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["registry"]["swap_fee_bps"] == 25

    def test_run_batch(self, config_file, tmp_path, quiet_logs):
        batch = {
            "balances": {"0xalice": {"0x1::coins::A": 50_000, "0x1::coins::B": 50_000}},
            "transactions": [
                {"op_type": "CREATE_PAIR", "sender": "0xalice", "nonce": 0,
                 "params": {"asset_x": "0x1::coins::A", "asset_y": "0x1::coins::B"}},
                {"op_type": "ADD_LIQUIDITY", "sender": "0xalice", "nonce": 1,
                 "params": {"asset_x": "0x1::coins::A", "asset_y": "0x1::coins::B",
                            "amount_x_desired": 10_000, "amount_y_desired": 10_000}},
                {"op_type": "SWAP_EXACT_INPUT", "sender": "0xalice", "nonce": 2,
                 "params": {"asset_in": "0x1::coins::A", "asset_out": "0x1::coins::B",
                            "amount_in": 1_000}},
            ],
        }
        path = tmp_path / "batch.json"
        path.write_text(json.dumps(batch))

        result = CliRunner().invoke(
            cli, quiet_logs + ["run", str(path), "--config", str(config_file), "--json"]
        )
        assert result.exit_code == 0, result.output
        output = json.loads(result.stdout)
        assert [r["success"] for r in output["results"]] == [True, True, True]
        # 25 bps fee from the config file
        assert output["results"][2]["data"]["amount_out"] == 907
        assert output["stats"]["pairs"] == 1

    @pytest.mark.parametrize("field,value", [("nonce", -1), ("timestamp", -1), ("deadline", -1)])
    def test_run_rejects_negative_envelope_fields(self, config_file, tmp_path, quiet_logs, field, value):
        tx = {"op_type": "PAUSE", "sender": "0xadmin", "nonce": 0, field: value}
        path = tmp_path / "batch.json"
        path.write_text(json.dumps({"transactions": [tx]}))

        result = CliRunner().invoke(cli, quiet_logs + ["run", str(path), "--config", str(config_file)])
        assert result.exit_code == 1
        assert not isinstance(result.exception, OverflowError)
        assert "Malformed transaction" in result.output

    def test_run_needs_admin(self, tmp_path):
        path = tmp_path / "batch.json"
        path.write_text(json.dumps({"transactions": []}))
        result = CliRunner().invoke(
            cli, ["run", str(path), "--config", str(tmp_path / "absent.toml")]
        )
        assert result.exit_code != 0
        assert "admin" in result.output

    def test_run_writes_configured_log_file(self, tmp_path, restore_logging):
        log_file = tmp_path / "logs" / "dex.log"
        config_path = tmp_path / "config.toml"
        config_path.write_text(
            '[registry]\nadmin = "0xadmin"\n\n'
            f'[logging]\nlevel = "INFO"\nconsole = false\nfile_enabled = true\nfile = "{log_file.as_posix()}"\n'
        )
        batch = {"transactions": [
            {"op_type": "CREATE_PAIR", "sender": "0xalice", "nonce": 0,
             "params": {"asset_x": "0x1::coins::A", "asset_y": "0x1::coins::B"}},
        ]}
        path = tmp_path / "batch.json"
        path.write_text(json.dumps(batch))

        result = CliRunner().invoke(cli, ["run", str(path), "--config", str(config_path)])
        assert result.exit_code == 0, result.output
        assert log_file.exists()
        assert "created by 0xalice" in log_file.read_text()
