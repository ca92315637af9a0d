"""relayhooks configuration management.

Loads configuration from .relayhooks/config.yaml with sensible defaults.
All settings can be overridden via environment variables (RELAYHOOKS_*).

Config locations (in priority order):
1. Explicit path passed to load_config()
2. .relayhooks/config.yaml (project-local)
3. ~/.relayhooks/config.yaml (user-global)
4. Built-in defaults

The relay wrapper's own variables are honored too:
AGENT_RELAY_NAME sets inbox.agent_name, AGENT_RELAY_DIR sets inbox.inbox_dir.

Thread Safety:
    Uses threading.Lock for thread-safe lazy initialization.
"""


import logging
import os
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from relayhooks.foundation.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GateConfig:
    """Defaults for inbox-check gates."""

    timeout_s: float = 30.0
    """How long a gate suspends before answering Retry(InboxTimeout)."""

    poll_interval_s: float = 0.25
    """Sleep between reads for pull-based snapshot sources."""


@dataclass(frozen=True, slots=True)
class InboxConfig:
    """Location of file-based relay inboxes."""

    inbox_dir: str = "/tmp/agent-relay"
    """Root directory; each agent owns <inbox_dir>/<agent>/inbox.md."""

    agent_name: str | None = None
    """Agent whose inbox is read when none is given explicitly."""


@dataclass(frozen=True, slots=True)
class HooksConfig:
    """Registry defaults."""

    default_priority: int = 0
    """Priority assigned by the phase wrappers when none is given."""


@dataclass(frozen=True, slots=True)
class RelayHooksConfig:
    """Root configuration for relayhooks."""

    gate: GateConfig = field(default_factory=GateConfig)
    inbox: InboxConfig = field(default_factory=InboxConfig)
    hooks: HooksConfig = field(default_factory=HooksConfig)

    debug: bool = False
    """Enable DEBUG logging by default."""


# Global config instance (lazy-loaded, thread-safe)
_config: RelayHooksConfig | None = None
_config_lock = threading.Lock()

_ENV_PREFIX = "RELAYHOOKS_"

# Known section structure for splitting RELAYHOOKS_SECTION_KEY
_KNOWN_SECTIONS: dict[str, set[str]] = {
    "gate": {"timeout_s", "poll_interval_s"},
    "inbox": {"inbox_dir", "agent_name"},
    "hooks": {"default_priority"},
}


def _deep_update(base: dict, updates: dict) -> dict:
    """Recursively update a dict with another dict."""
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def _coerce(value: str) -> Any:
    """Coerce an env var string to bool, int or float where it looks like one."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    try:
        return float(value)
    except ValueError:
        return value


def _apply_env_overrides(config_dict: dict) -> dict:
    """Apply environment variable overrides.

    Environment variables follow pattern: RELAYHOOKS_SECTION_KEY

    Examples:
        RELAYHOOKS_GATE_TIMEOUT_S=5
        RELAYHOOKS_INBOX_INBOX_DIR=/var/relay
        RELAYHOOKS_DEBUG=true
    """
    for key, value in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue

        path_str = key[len(_ENV_PREFIX):].lower()

        if path_str == "debug":
            config_dict["debug"] = _coerce(value)
            continue

        for section, keys in _KNOWN_SECTIONS.items():
            if not path_str.startswith(section + "_"):
                continue
            remaining = path_str[len(section) + 1:]
            if remaining in keys:
                config_dict.setdefault(section, {})[remaining] = (
                    value if remaining in ("inbox_dir", "agent_name") else _coerce(value)
                )
            break

    if agent := os.environ.get("AGENT_RELAY_NAME"):
        config_dict.setdefault("inbox", {})["agent_name"] = agent
    if relay_dir := os.environ.get("AGENT_RELAY_DIR"):
        config_dict.setdefault("inbox", {})["inbox_dir"] = relay_dir

    return config_dict


def _validate(config: RelayHooksConfig) -> RelayHooksConfig:
    if config.gate.timeout_s < 0:
        raise ConfigError("gate.timeout_s", f"must be >= 0, got {config.gate.timeout_s}")
    if config.gate.poll_interval_s <= 0:
        raise ConfigError(
            "gate.poll_interval_s", f"must be > 0, got {config.gate.poll_interval_s}"
        )
    return config


def _dict_to_config(data: dict) -> RelayHooksConfig:
    """Convert a dict to RelayHooksConfig."""
    sections = {"gate": GateConfig, "inbox": InboxConfig, "hooks": HooksConfig}
    built: dict[str, Any] = {}
    for name, cls in sections.items():
        try:
            built[name] = cls(**(data.get(name) or {}))
        except TypeError as e:
            raise ConfigError(name, str(e)) from e
    return _validate(RelayHooksConfig(**built, debug=bool(data.get("debug", False))))


def load_config(path: str | Path | None = None) -> RelayHooksConfig:
    """Load configuration from file with defaults and env overrides.

    Priority (highest to lowest):
    1. Environment variables (RELAYHOOKS_*, AGENT_RELAY_*)
    2. Explicit path if provided
    3. .relayhooks/config.yaml (project-local)
    4. ~/.relayhooks/config.yaml (user-global)
    5. Built-in defaults

    Args:
        path: Optional explicit config file path.

    Returns:
        Merged RelayHooksConfig instance.

    Raises:
        ConfigError: If a value is out of range.
    """
    global _config

    config_dict: dict[str, Any] = asdict(RelayHooksConfig())

    config_paths = []
    if path:
        config_paths.append(Path(path))
    config_paths.extend([
        Path(".relayhooks/config.yaml"),
        Path.home() / ".relayhooks" / "config.yaml",
    ])

    for config_path in config_paths:
        if config_path.exists():
            try:
                with open(config_path) as f:
                    file_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Skipping unreadable config %s: %s", config_path, e)
                continue
            _deep_update(config_dict, file_config)
            logger.debug("Loaded config from %s", config_path)
            break  # Use first found config

    config_dict = _apply_env_overrides(config_dict)

    _config = _dict_to_config(config_dict)
    return _config


def get_config() -> RelayHooksConfig:
    """Get the current configuration, loading if needed.

    Thread-safe with double-check locking.
    """
    if _config is not None:
        return _config

    with _config_lock:
        if _config is None:
            return load_config()
        return _config


def reset_config() -> None:
    """Reset the global config (useful for testing)."""
    global _config
    with _config_lock:
        _config = None
