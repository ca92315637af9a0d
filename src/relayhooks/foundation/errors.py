"""relayhooks error system.

Provides structured errors for caller misuse:
- Numeric error codes for programmatic handling
- User-friendly messages
- Context for debugging

Handler faults, inbox timeouts and cancellation are never raised out of an
emission. They travel as outcome reasons (see ``relayhooks.hooks.types``).
"""


from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric error codes organized by category.

    Format: XYYY where X = category, YYY = specific error

    Categories:
        1xxx - Registration errors
        2xxx - Trajectory errors
        3xxx - Handler errors
        4xxx - Inbox errors
        5xxx - Configuration errors
    """

    # 1xxx - Registration Errors
    HOOK_DUPLICATE_ID = 1001
    HOOK_INVALID = 1002

    # 2xxx - Trajectory Errors
    TRAJECTORY_INVALID_TRANSITION = 2001

    # 3xxx - Handler Errors
    HANDLER_INVALID_RESULT = 3001

    # 4xxx - Inbox Errors
    INBOX_AGENT_MISSING = 4001

    # 5xxx - Configuration Errors
    CONFIG_INVALID = 5002

    @property
    def category(self) -> str:
        """Get the error category name."""
        prefix = self.value // 1000
        return {
            1: "registration",
            2: "trajectory",
            3: "handler",
            4: "inbox",
            5: "config",
        }.get(prefix, "unknown")


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.HOOK_DUPLICATE_ID: "Hook id '{hook_id}' is already registered.",
    ErrorCode.HOOK_INVALID: "Invalid hook '{hook_id}': {detail}",
    ErrorCode.TRAJECTORY_INVALID_TRANSITION: (
        "Invalid transition for trajectory '{trajectory_id}': "
        "{kind} not allowed in state {state} ({detail})."
    ),
    ErrorCode.HANDLER_INVALID_RESULT: "Hook '{hook_id}' returned {detail}, expected an Outcome or None.",
    ErrorCode.INBOX_AGENT_MISSING: "Agent name not configured. Set AGENT_RELAY_NAME env var.",
    ErrorCode.CONFIG_INVALID: "Invalid configuration for '{key}': {detail}",
}


class RelayHooksError(Exception):
    """Base error type for all relayhooks errors.

    Example:
        >>> err = RelayHooksError(
        ...     code=ErrorCode.HOOK_DUPLICATE_ID,
        ...     context={"hook_id": "audit"},
        ... )
        >>> print(err)
        [RH-1001] Hook id 'audit' is already registered.
    """

    def __init__(
        self,
        code: ErrorCode,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        self.code = code
        self.context = context or {}
        self.cause = cause
        super().__init__(str(self))

    @property
    def message(self) -> str:
        """Get the formatted user-friendly message."""
        template = ERROR_MESSAGES.get(self.code, "An error occurred: {detail}")
        try:
            return template.format(**self.context)
        except KeyError:
            return template

    @property
    def category(self) -> str:
        return self.code.category

    @property
    def error_id(self) -> str:
        """Get the error ID string (e.g., 'RH-1001')."""
        return f"RH-{self.code.value}"

    def __str__(self) -> str:
        return f"[{self.error_id}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, context={self.context!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for logging."""
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category,
            "message": self.message,
            "context": self.context,
        }


class DuplicateHookId(RelayHooksError):
    """Raised by ``HookRegistry.register`` when the hook id is taken."""

    def __init__(self, hook_id: str):
        self.hook_id = hook_id
        super().__init__(ErrorCode.HOOK_DUPLICATE_ID, {"hook_id": hook_id})


class InvalidTransition(RelayHooksError):
    """Raised when the driver emits a lifecycle event out of order.

    This is a caller bug rather than a hook failure, so it is raised
    synchronously and never folded into an outcome.
    """

    def __init__(
        self,
        trajectory_id: str,
        kind: object,
        state: object,
        detail: str,
    ):
        self.trajectory_id = trajectory_id
        self.kind = kind
        self.state = state
        self.detail = detail
        super().__init__(
            ErrorCode.TRAJECTORY_INVALID_TRANSITION,
            {
                "trajectory_id": trajectory_id,
                "kind": getattr(kind, "value", kind),
                "state": getattr(state, "value", state),
                "detail": detail,
            },
        )


class ConfigError(RelayHooksError):
    """Raised when configuration values are out of range."""

    def __init__(self, key: str, detail: str):
        super().__init__(ErrorCode.CONFIG_INVALID, {"key": key, "detail": detail})


def inbox_agent_missing() -> RelayHooksError:
    """Create an INBOX_AGENT_MISSING error."""
    return RelayHooksError(code=ErrorCode.INBOX_AGENT_MISSING)
