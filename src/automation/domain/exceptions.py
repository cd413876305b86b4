"""Custom exceptions for the automation engine."""


class AutomationException(Exception):
    """Base exception for all automation errors."""

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize automation exception.

        Args:
            message: Human-readable error message
            details: Optional dict with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)


class RuleConfigurationError(AutomationException):
    """Raised when a rule aggregate is inconsistent and must not be saved."""

    def __init__(self, errors: list[str], rule_name: str | None = None):
        self.errors = errors
        details = {"errors": errors}
        if rule_name:
            details["rule_name"] = rule_name
        super().__init__(message="; ".join(errors), details=details)


class RuleNotFoundError(AutomationException):
    """Raised when a rule does not exist."""

    def __init__(self, rule_id: int):
        super().__init__(message=f"Rule {rule_id} not found", details={"rule_id": rule_id})


class DispatchError(AutomationException):
    """Raised when the command queue rejects a command."""

    def __init__(self, message: str, actuator_id: str | None = None, original_error: Exception | None = None):
        details = {}
        if actuator_id:
            details["actuator_id"] = actuator_id
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__
        super().__init__(message, details)


class DispatchTimeoutError(DispatchError):
    """Raised when a command submission does not complete in time."""

    def __init__(self, actuator_id: str, timeout: float):
        super().__init__(f"Command submission for actuator {actuator_id} timed out after {timeout}s", actuator_id)
        self.details["timeout_seconds"] = timeout


class LockTimeoutError(AutomationException):
    """Raised when the per-rule lock could not be acquired in time."""

    def __init__(self, rule_id: int, timeout: float):
        super().__init__(
            message=f"Could not acquire lock for rule {rule_id} within {timeout}s",
            details={"rule_id": rule_id, "timeout_seconds": timeout},
        )
