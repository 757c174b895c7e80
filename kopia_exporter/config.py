import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import StartupError

DEFAULT_CONFIG_PATH = "/app/config"
DEFAULT_LOG_DIRECTORY = "/app/logs"
DEFAULT_SERVER_URL = "http://kopia-server:51515"
DEFAULT_PORT = 9091
DEFAULT_POLL_INTERVAL = 60
DEFAULT_COMMAND_TIMEOUT = 300
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ExporterConfig:
    """Runtime configuration, read from the environment."""

    password: str = ""
    server_url: str = DEFAULT_SERVER_URL
    config_path: str = DEFAULT_CONFIG_PATH
    cache_directory: Optional[str] = None
    log_directory: str = DEFAULT_LOG_DIRECTORY
    kopia_binary: str = "kopia"
    command_timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    log_level: str = "INFO"

    def directories(self):
        return [d for d in (self.config_path, self.cache_directory, self.log_directory) if d]

    def __repr__(self):
        # keep the password out of logs
        return (
            f"ExporterConfig(server_url={self.server_url!r}, config_path={self.config_path!r}, "
            f"cache_directory={self.cache_directory!r}, log_directory={self.log_directory!r}, "
            f"port={self.port}, poll_interval={self.poll_interval})"
        )


def _number(environ, name, default, cast):
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise StartupError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise StartupError(f"{name} must be a finite number, got {raw!r}")
    if value < 0:
        raise StartupError(f"{name} must not be negative, got {raw!r}")
    return value


def load_config(environ: Optional[Mapping[str, str]] = None) -> ExporterConfig:
    if environ is None:
        environ = os.environ

    password = environ.get("KOPIA_PASSWORD", "")
    if not password:
        raise StartupError("KOPIA_PASSWORD environment variable is required")

    poll_interval = _number(environ, "POLL_INTERVAL", DEFAULT_POLL_INTERVAL, float)
    if poll_interval == 0:
        raise StartupError("POLL_INTERVAL must be greater than zero")

    timeout = _number(environ, "KOPIA_COMMAND_TIMEOUT", DEFAULT_COMMAND_TIMEOUT, float)

    log_level = (environ.get("LOG_LEVEL") or "INFO").upper()
    if log_level not in LOG_LEVELS:
        raise StartupError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    return ExporterConfig(
        password=password,
        server_url=environ.get("KOPIA_SERVER_URL") or DEFAULT_SERVER_URL,
        config_path=environ.get("KOPIA_CONFIG_PATH") or DEFAULT_CONFIG_PATH,
        cache_directory=environ.get("KOPIA_CACHE_DIRECTORY") or None,
        log_directory=environ.get("KOPIA_LOG_DIRECTORY") or DEFAULT_LOG_DIRECTORY,
        kopia_binary=environ.get("KOPIA_BINARY") or "kopia",
        command_timeout=timeout or None,
        host=environ.get("EXPORTER_HOST") or "0.0.0.0",
        port=_number(environ, "EXPORTER_PORT", DEFAULT_PORT, int),
        poll_interval=poll_interval,
        log_level=log_level,
    )


def ensure_directories(config: ExporterConfig):
    """Create the directories Kopia and the exporter write into."""
    for directory in config.directories():
        try:
            Path(directory).mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            raise StartupError(f"Cannot create directory {directory}: {e}") from e
