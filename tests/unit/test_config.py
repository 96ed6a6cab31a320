"""Tests for pipeline configuration and logging setup."""

import logging

import pytest
import structlog

from lpflow.config import DEFAULT_CONFIG, PipelineConfig
from lpflow.constants import (
    DEFAULT_FLOW_TTL_SECONDS,
    PERMIT2_ADDRESS,
    PERMIT_EXPIRATION_DURATION_SECONDS,
)
from lpflow.log import configure_logging
from tests.helpers import ZAP_ROUTER

ENV_VARS = [
    "LPFLOW_CHAIN_ID",
    "LPFLOW_PERMIT2_ADDRESS",
    "LPFLOW_ZAP_ROUTER_ADDRESS",
    "LPFLOW_POSITION_MANAGER_ADDRESS",
    "LPFLOW_PERMIT_EXPIRATION_SECONDS",
    "LPFLOW_PERMIT_SIG_DEADLINE_SECONDS",
    "LPFLOW_SLIPPAGE_BPS",
    "LPFLOW_MAX_TICK_DRIFT",
    "LPFLOW_FLOW_TTL_SECONDS",
    "LPFLOW_AUTO_ADVANCE",
    "LPFLOW_FLOW_STORE_DIR",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestPipelineConfig:
    def test_defaults(self):
        config = PipelineConfig()
        assert config.permit2_address == PERMIT2_ADDRESS
        assert config.permit_expiration_seconds == PERMIT_EXPIRATION_DURATION_SECONDS
        assert config.flow_ttl_seconds == DEFAULT_FLOW_TTL_SECONDS
        assert config.auto_advance is True
        assert config.flow_store_dir is None

    def test_frozen(self):
        with pytest.raises(AttributeError):
            DEFAULT_CONFIG.chain_id = 5  # type: ignore[misc]

    def test_from_env_without_variables(self, clean_env):
        assert PipelineConfig.from_env() == PipelineConfig()

    def test_from_env(self, clean_env, tmp_path):
        clean_env.setenv("LPFLOW_CHAIN_ID", "8453")
        clean_env.setenv("LPFLOW_ZAP_ROUTER_ADDRESS", ZAP_ROUTER)
        clean_env.setenv("LPFLOW_SLIPPAGE_BPS", "100")
        clean_env.setenv("LPFLOW_MAX_TICK_DRIFT", "20")
        clean_env.setenv("LPFLOW_FLOW_TTL_SECONDS", "60")
        clean_env.setenv("LPFLOW_AUTO_ADVANCE", "false")
        clean_env.setenv("LPFLOW_FLOW_STORE_DIR", str(tmp_path))

        config = PipelineConfig.from_env()

        assert config.chain_id == 8453
        assert config.zap_router_address == ZAP_ROUTER
        assert config.slippage_bps == 100
        assert config.max_tick_drift == 20
        assert config.flow_ttl_seconds == 60
        assert config.auto_advance is False
        assert config.flow_store_dir == str(tmp_path)

    @pytest.mark.parametrize("value,expected", [("1", True), ("YES", True), ("no", False)])
    def test_auto_advance_parsing(self, clean_env, value, expected):
        clean_env.setenv("LPFLOW_AUTO_ADVANCE", value)
        assert PipelineConfig.from_env().auto_advance is expected

    def test_empty_store_dir_means_memory(self, clean_env):
        clean_env.setenv("LPFLOW_FLOW_STORE_DIR", "")
        assert PipelineConfig.from_env().flow_store_dir is None

    def test_invalid_integer(self, clean_env):
        clean_env.setenv("LPFLOW_CHAIN_ID", "mainnet")
        with pytest.raises(ValueError):
            PipelineConfig.from_env()


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_json_renderer(self):
        configure_logging(json=True)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer(self):
        configure_logging(logging.DEBUG)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_level_filtering(self, capsys):
        configure_logging(logging.WARNING, json=True)
        logger = structlog.get_logger()
        logger.info("hidden_event")
        logger.warning("shown_event", flow_id="abc")

        out = capsys.readouterr().out
        assert "hidden_event" not in out
        assert '"event": "shown_event"' in out
        assert '"flow_id": "abc"' in out
