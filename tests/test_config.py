from pathlib import Path

import pytest

from guardian.config import Settings, load_settings


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


def test_defaults() -> None:
    settings = _settings()

    assert settings.server_url == "http://localhost:9200"
    assert settings.access_token is None
    assert settings.min_interval_ms == 10_000
    assert settings.premium_amount == 1.0
    assert settings.run_count == 4
    assert settings.premium_receiver is None
    assert settings.tool_timeout_ms == 480_000
    assert settings.ready_timeout_ms == 30_000
    assert settings.continue_on_error is False


def test_reads_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HG_AGENT_MCP_URL", "http://mcp.test:9300/")
    monkeypatch.setenv("HG_AGENT_ACCESS_TOKEN", "tok")
    monkeypatch.setenv("HG_AGENT_MIN_INTERVAL_MS", "2500")
    monkeypatch.setenv("HG_AGENT_PREMIUM_AMOUNT", "2.75")
    monkeypatch.setenv("HG_AGENT_RUN_COUNT", "2")
    monkeypatch.setenv("HG_AGENT_PREMIUM_RECEIVER", "0xabc")

    settings = _settings()

    assert settings.access_token == "tok"
    assert settings.mcp_url == "http://mcp.test:9300/mcp"
    assert settings.llm_url == "http://mcp.test:9300/llm"
    assert settings.min_interval_ms == 2_500
    assert settings.premium_amount == 2.75
    assert settings.run_count == 2
    assert settings.premium_receiver == "0xabc"


def test_fallback_variable_names(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXPO_PUBLIC_MCP_URL", "http://expo.test")
    monkeypatch.setenv("HG_PREMIUM_RECEIVER_ADDRESS", "0xdef")

    settings = _settings()

    assert settings.server_url == "http://expo.test"
    assert settings.premium_receiver == "0xdef"


@pytest.mark.parametrize(
    ("key", "field", "raw", "default"),
    [
        ("HG_AGENT_MIN_INTERVAL_MS", "min_interval_ms", "not-a-number", 10_000),
        ("HG_AGENT_PREMIUM_AMOUNT", "premium_amount", "not-a-number", 1.0),
        ("HG_AGENT_RUN_COUNT", "run_count", "not-a-number", 4),
        ("HG_AGENT_RUN_COUNT", "run_count", "nan", 4),
        ("HG_AGENT_RUN_COUNT", "run_count", "inf", 4),
        ("HG_AGENT_PREMIUM_AMOUNT", "premium_amount", "-inf", 1.0),
        ("HG_AGENT_MIN_INTERVAL_MS", "min_interval_ms", "-5", 10_000),
        ("HG_AGENT_TOOL_TIMEOUT_MS", "tool_timeout_ms", "0", 480_000),
        ("HG_AGENT_READY_TIMEOUT_MS", "ready_timeout_ms", "-1", 30_000),
    ],
)
def test_unparsable_numbers_use_defaults(
    monkeypatch: pytest.MonkeyPatch, key: str, field: str, raw: str, default: float
) -> None:
    monkeypatch.setenv(key, raw)

    assert getattr(_settings(), field) == default


@pytest.mark.parametrize("raw", ["soon", "nan", "inf", "-250"])
def test_unparsable_run_delay_falls_back_to_interval(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("HG_AGENT_RUN_DELAY_MS", raw)

    settings = _settings(min_interval_ms=3_000)

    assert settings.run_delay_ms is None
    assert settings.inter_run_delay_ms == 3_000


def test_parse_failure_is_logged(monkeypatch: pytest.MonkeyPatch, log_messages: list[str]) -> None:
    monkeypatch.setenv("HG_AGENT_RUN_COUNT", "inf")

    assert _settings().run_count == 4
    assert any("config.parse_failed field=run_count" in message for message in log_messages)


def test_blank_values_are_treated_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HG_AGENT_ACCESS_TOKEN", "  ")
    monkeypatch.setenv("HG_AGENT_RUN_COUNT", "")

    settings = _settings()

    assert settings.access_token is None
    assert settings.run_count == 4


def test_inter_run_delay_follows_interval_unless_set() -> None:
    assert _settings(min_interval_ms=3_000).inter_run_delay_ms == 3_000
    assert _settings(min_interval_ms=3_000, run_delay_ms=500).inter_run_delay_ms == 500


def test_plugin_env_file_wins_over_dotenv(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("HG_AGENT_RUN_COUNT=7\nHG_AGENT_ACCESS_TOKEN=from-dotenv\n", encoding="utf-8")
    (tmp_path / ".env.health-guardian").write_text("HG_AGENT_ACCESS_TOKEN=from-plugin\n", encoding="utf-8")

    settings = load_settings()

    assert settings.access_token == "from-plugin"
    assert settings.run_count == 7


def test_load_settings_applies_only_given_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HG_AGENT_RUN_COUNT", "6")

    settings = load_settings(run_count=None, premium_amount=3.0)

    assert settings.run_count == 6
    assert settings.premium_amount == 3.0
