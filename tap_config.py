# tap_config.py  (defaults <- YAML file <- environment / .env)
import os, logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

CONFIG_HOME = Path.home() / ".mcp-tap"
DEFAULT_LOG_DIR = str(CONFIG_HOME / "logs")
DEFAULT_CONFIG_FILE = CONFIG_HOME / "config.yaml"

ENV_KEYS = {
    "log_dir": "MCP_TAP_LOG_DIR",
    "log_file": "MCP_TAP_LOG_FILE",
    "http_port": "MCP_TAP_PORT",
    "poll_interval": "MCP_TAP_POLL_INTERVAL",
    "switch_interval": "MCP_TAP_SWITCH_INTERVAL",
    "wait_interval": "MCP_TAP_WAIT_INTERVAL",
    "log_level": "MCP_TAP_LOG_LEVEL",
}


@dataclass
class TapConfig:
    log_dir: str = DEFAULT_LOG_DIR
    log_file: Optional[str] = None
    http_port: Optional[int] = None
    poll_interval: float = 0.2      # tail: content poll
    switch_interval: float = 2.0    # tail: newer-file check
    wait_interval: float = 1.0      # tail: waiting for a first log file
    log_level: str = "INFO"
    color: bool = True


def _coerce(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key == "http_port":
        try:
            port = int(value)
        except (TypeError, ValueError):
            port = -1
        if not 0 < port < 65536:
            raise ValueError(f"config: http_port must be a port number 1-65535, got {value!r}")
        return port
    try:
        if key.endswith("_interval"):
            v = float(value)
            if v <= 0:
                raise ValueError
            return v
    except (TypeError, ValueError):
        raise ValueError(f"config: {key} must be a positive number, got {value!r}")
    if key == "color":
        if isinstance(value, str):
            return value.strip().lower() not in ("0", "false", "no", "off")
        return bool(value)
    if key in ("log_dir", "log_file"):
        return os.path.expanduser(str(value))
    if key == "log_level":
        level = str(value).strip().upper()
        # getLevelName maps known names to their int value
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"config: log_level must be a logging level name, got {value!r}")
        return level
    return value


def load_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    known = {f.name for f in fields(TapConfig)}
    unknown = sorted(set(cfg) - known)
    if unknown:
        raise ValueError(f"{path}: unknown keys {unknown}")
    return cfg


def load_config(path: Optional[str] = None) -> TapConfig:
    load_dotenv()
    values: Dict[str, Any] = {}

    cfg_path = path or os.environ.get("MCP_TAP_CONFIG")
    if cfg_path:
        values.update(load_yaml(Path(cfg_path).expanduser()))
    elif DEFAULT_CONFIG_FILE.exists():
        values.update(load_yaml(DEFAULT_CONFIG_FILE))

    for key, env in ENV_KEYS.items():
        if os.environ.get(env):
            values[key] = os.environ[env]

    return TapConfig(**{k: _coerce(k, v) for k, v in values.items() if v is not None})
