"""Foundation domain - config, errors, logging.

Everything else imports from here; nothing here imports from the hook
or inbox domains.
"""

from relayhooks.foundation.config import (
    GateConfig,
    HooksConfig,
    InboxConfig,
    RelayHooksConfig,
    get_config,
    load_config,
    reset_config,
)
from relayhooks.foundation.errors import (
    ConfigError,
    DuplicateHookId,
    ErrorCode,
    InvalidTransition,
    RelayHooksError,
)
from relayhooks.foundation.logging import configure_logging

__all__ = [
    # Config
    "GateConfig",
    "HooksConfig",
    "InboxConfig",
    "RelayHooksConfig",
    "get_config",
    "load_config",
    "reset_config",
    # Errors
    "ConfigError",
    "DuplicateHookId",
    "ErrorCode",
    "InvalidTransition",
    "RelayHooksError",
    # Logging
    "configure_logging",
]
