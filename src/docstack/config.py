from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import tomllib

ENABLE_FIND_PATH_ENV = "DOCSTACK_ENABLE_FIND_PATH"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

def _expand(p: str) -> str:
    return os.path.expandvars(os.path.expanduser(p))

def _env_flag(name: str) -> bool | None:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes")

@dataclass(frozen=True)
class StackConfig:
    """Configuration for document stack resolution.

    Only the find_path flag changes what a lookup does; the rest tunes the
    provider deadline, the CLI worker pool and logging.
    """

    # Native path resolution is opt-in per deployment, not detected per provider
    enable_find_path: bool = True

    # Provider
    find_path_timeout_ms: int = 0  # 0 = no deadline

    # Background executor
    max_workers: int = 1

    # Logging
    log_level: str = "INFO"  # DEBUG|INFO|WARNING|ERROR
    log_file: str | None = None  # supports {date}, {datetime}

    @staticmethod
    def from_toml(path: str | Path) -> "StackConfig":
        data = tomllib.loads(Path(_expand(str(path))).read_text(encoding="utf-8"))
        features = data.get("features", {})
        provider = data.get("provider", {})
        executor = data.get("executor", {})
        log = data.get("logging", {})

        # Environment variable takes precedence if explicitly set
        enable_find_path = _env_flag(ENABLE_FIND_PATH_ENV)
        if enable_find_path is None:
            enable_find_path = bool(features.get("enable_find_path", True))

        timeout_ms = int(provider.get("find_path_timeout_ms", 0))
        if timeout_ms < 0 or timeout_ms > 600_000:
            raise ValueError(f"Invalid find_path_timeout_ms: {timeout_ms}. Must be between 0 and 600000.")

        max_workers = int(executor.get("max_workers", 1))
        if max_workers <= 0 or max_workers > 64:
            raise ValueError(f"Invalid max_workers: {max_workers}. Must be between 1 and 64.")

        log_level = str(log.get("level", "INFO")).upper()
        if log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {log_level}. Must be one of {VALID_LOG_LEVELS}.")

        log_file = log.get("file")
        if log_file:
            log_file = _expand(log_file)

        return StackConfig(
            enable_find_path=enable_find_path,
            find_path_timeout_ms=timeout_ms,
            max_workers=max_workers,
            log_level=log_level,
            log_file=log_file,
        )

    @staticmethod
    def from_env() -> "StackConfig":
        """Defaults, with the feature flag taken from the environment when set."""
        flag = _env_flag(ENABLE_FIND_PATH_ENV)
        if flag is None:
            return StackConfig()
        return StackConfig(enable_find_path=flag)
