"""Custom exceptions for the API layer."""


class APIException(Exception):
    """Base exception for all API errors."""

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize API exception.

        Args:
            message: Human-readable error message
            details: Optional dict with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundException(APIException):
    """Raised when a requested resource is not found."""

    pass


class RuleNotFoundException(ResourceNotFoundException):
    """Raised when an automation rule does not exist (or belongs to another owner)."""

    def __init__(self, rule_id: int, owner_id: str | None = None):
        details = {"rule_id": rule_id}
        if owner_id is not None:
            details["owner_id"] = owner_id
        super().__init__(message=f"Rule {rule_id} not found", details=details)


class SensorNotFoundException(ResourceNotFoundException):
    """Raised when a sensor is not registered."""

    def __init__(self, sensor_id: str):
        super().__init__(message=f"Sensor {sensor_id} not found", details={"sensor_id": sensor_id})