"""Configuration loading from CLI args, env vars, and optional YAML file."""

import logging
import os
from dataclasses import dataclass

import yaml

logger = logging.getLogger(__name__)

PRIVILEGED_PORT = 514
UNPRIVILEGED_PORT = 5140


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def default_port() -> int:
    """514 when running as root, otherwise 5140."""
    return PRIVILEGED_PORT if os.geteuid() == 0 else UNPRIVILEGED_PORT


@dataclass(frozen=True)
class Config:
    storage_dir: str = "./db"
    host: str = "0.0.0.0"
    port: int = UNPRIVILEGED_PORT
    verbose: bool = False
    recv_buffer_bytes: int = 262144
    max_datagram_bytes: int = 65535
    queue_capacity: int = 100_000
    poll_timeout_sec: float = 1.0
    pop_timeout_sec: float = 0.5
    retention_days: int = 7
    sweep_interval_sec: int = 3600
    compression_preset: int = 1

    @property
    def retention_seconds(self) -> int:
        return self.retention_days * 86400


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as exc:
        logger.error("Config file %s is not valid YAML, using defaults: %s", path, exc)
        return {}

    if not isinstance(data, dict):
        logger.error("Config file %s must contain a mapping, using defaults", path)
        return {}
    logger.info("Loaded YAML config from %s", path)
    return data


def _pick(cli_value, env_name: str, yaml_data: dict, key: str, default):
    """CLI beats env, env beats YAML, YAML beats the default."""
    if cli_value is not None:
        return cli_value
    if env_name and env_name in os.environ:
        return os.environ[env_name]
    return yaml_data.get(key, default)


def load_config(cli_args=None, yaml_data: dict | None = None) -> Config:
    """Build Config from CLI args, env vars, and parsed YAML data."""
    yaml_data = yaml_data or {}
    db_dir = getattr(cli_args, "db_dir", None)
    port = getattr(cli_args, "port", None)
    verbose = True if getattr(cli_args, "verbose", False) else None

    return Config(
        storage_dir=_pick(db_dir, "LOGCOLLECTD_DB_DIR", yaml_data, "storage_dir", Config.storage_dir),
        host=_pick(None, "LOGCOLLECTD_HOST", yaml_data, "host", Config.host),
        port=int(_pick(port, "LOGCOLLECTD_PORT", yaml_data, "port", default_port())),
        verbose=_parse_bool(_pick(verbose, "LOGCOLLECTD_VERBOSE", yaml_data, "verbose", Config.verbose)),
        recv_buffer_bytes=int(
            _pick(None, "LOGCOLLECTD_RCVBUF", yaml_data, "recv_buffer_bytes", Config.recv_buffer_bytes)
        ),
        queue_capacity=int(
            _pick(None, "LOGCOLLECTD_QUEUE_CAPACITY", yaml_data, "queue_capacity", Config.queue_capacity)
        ),
        poll_timeout_sec=float(yaml_data.get("poll_timeout_sec", Config.poll_timeout_sec)),
        pop_timeout_sec=float(yaml_data.get("pop_timeout_sec", Config.pop_timeout_sec)),
        retention_days=int(
            _pick(None, "LOGCOLLECTD_RETENTION_DAYS", yaml_data, "retention_days", Config.retention_days)
        ),
        sweep_interval_sec=int(
            _pick(None, "LOGCOLLECTD_SWEEP_INTERVAL", yaml_data, "sweep_interval_sec", Config.sweep_interval_sec)
        ),
        compression_preset=int(yaml_data.get("compression_preset", Config.compression_preset)),
    )
