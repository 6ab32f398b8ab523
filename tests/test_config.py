"""Tests for tap_config.py"""

import pytest

from tap_config import DEFAULT_LOG_DIR, ENV_KEYS, TapConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for env in list(ENV_KEYS.values()) + ["MCP_TAP_CONFIG"]:
        monkeypatch.delenv(env, raising=False)
    # keep load_dotenv from picking up a stray .env
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("tap_config.DEFAULT_CONFIG_FILE", tmp_path / "absent.yaml")


def test_defaults():
    cfg = load_config()
    assert cfg == TapConfig()
    assert cfg.log_dir == DEFAULT_LOG_DIR
    assert (cfg.poll_interval, cfg.switch_interval, cfg.wait_interval) == (0.2, 2.0, 1.0)


def test_yaml_file(tmp_path):
    path = tmp_path / "tap.yaml"
    path.write_text("log_dir: /srv/tap\nhttp_port: 3456\npoll_interval: 0.5\ncolor: false\n")
    cfg = load_config(str(path))
    assert cfg.log_dir == "/srv/tap"
    assert cfg.http_port == 3456
    assert cfg.poll_interval == 0.5
    assert cfg.color is False


def test_env_overrides_yaml(tmp_path, monkeypatch):
    path = tmp_path / "tap.yaml"
    path.write_text("log_dir: /srv/tap\n")
    monkeypatch.setenv("MCP_TAP_CONFIG", str(path))
    monkeypatch.setenv("MCP_TAP_LOG_DIR", "/from/env")
    monkeypatch.setenv("MCP_TAP_PORT", "8080")
    monkeypatch.setenv("MCP_TAP_LOG_LEVEL", "debug")
    cfg = load_config()
    assert cfg.log_dir == "/from/env"
    assert cfg.http_port == 8080
    assert cfg.log_level == "DEBUG"


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "tap.yaml"
    path.write_text("bogus: 1\n")
    with pytest.raises(ValueError, match="unknown keys"):
        load_config(str(path))


def test_bad_interval_rejected(monkeypatch):
    monkeypatch.setenv("MCP_TAP_POLL_INTERVAL", "soon")
    with pytest.raises(ValueError, match="poll_interval"):
        load_config()


def test_non_mapping_rejected(tmp_path):
    path = tmp_path / "tap.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="mapping"):
        load_config(str(path))


@pytest.mark.parametrize("level", ["LOUD", "verbose", ""])
def test_bad_log_level_rejected(tmp_path, level):
    path = tmp_path / "tap.yaml"
    path.write_text(f"log_level: '{level}'\n")
    with pytest.raises(ValueError, match="log_level"):
        load_config(str(path))


def test_log_level_names_accepted(monkeypatch):
    monkeypatch.setenv("MCP_TAP_LOG_LEVEL", "warning")
    assert load_config().log_level == "WARNING"


@pytest.mark.parametrize("port", ["0", "-1", "70000", "http"])
def test_bad_port_rejected(monkeypatch, port):
    monkeypatch.setenv("MCP_TAP_PORT", port)
    with pytest.raises(ValueError, match="http_port"):
        load_config()
