"""
Service-layer exception hierarchy.

Services raise these; ``create_app`` registers one JSON error handler per
type so every blueprint gets the same status codes and body shape:

    NotFoundError     → 404
    ValidationError   → 400 (malformed) / 422 (business rule)
    ConflictError     → 409
    PermissionDenied  → 403
    TransitionError   → 409

Usage:
    from richhabits.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Order", resource_id=42)
    raise ValidationError("Unknown feature flag", details={"flag": "nope"})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist or is not visible to the caller.

    Args:
        resource: Human-readable model name (e.g. "Order", "Role").
        resource_id: The PK that was looked up. Logged, not returned.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails validation in the service layer.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
        status: 400 for malformed input (default), 422 when well-formed
                data violates a business rule.
    """

    def __init__(self, message: str, details: dict | None = None, status: int = 400) -> None:
        self.details = details or {}
        self.status = status
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class PermissionDenied(Exception):
    """Raised when the current user lacks ``kind`` access on ``resource``."""

    def __init__(self, resource: str, kind: str = "read") -> None:
        self.resource = resource
        self.kind = kind
        super().__init__(f"Access denied: Insufficient permissions for {resource}")


class TransitionError(Exception):
    """Raised when a status change is not allowed by the workflow table.

    Args:
        entity: Workflow name ("order", "design_job", "manufacturing").
        current: Status the record is in now.
        target: Status that was requested.
        reason: Optional explanation; defaults to a generic message.
    """

    def __init__(self, entity: str, current: str, target: str, reason: str | None = None) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        self.reason = reason or f"Cannot move {entity} from '{current}' to '{target}'"
        super().__init__(self.reason)
