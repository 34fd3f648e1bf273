"""
Application-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Usage:
    from resolution_desk.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Resolution", resource_id="abc")
    raise ValidationError("title is required", details={"title": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist (stale id on read/update/delete).

    Args:
        resource: Human-readable entity name (e.g. "Resolution", "Category").
        resource_id: The id that was looked up. Logged, not shown to users.
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
    """Raised when input fails validation before it is sent to the store.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown; keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class DuplicateError(Exception):
    """Raised when a write would violate a uniqueness rule (username, category name, title).

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


class ConnectivityError(Exception):
    """Raised when the database cannot be reached. Flips the connectivity state offline."""

    def __init__(self, operation: str, reason: str | None = None) -> None:
        self.operation = operation
        self.reason = reason
        msg = f"Store unreachable during {operation}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PermissionDenied(Exception):
    """Raised when a user lacks the capability for an action."""

    def __init__(self, user_id: str | None, action: str, target: str | None = None) -> None:
        self.user_id = user_id
        self.action = action
        self.target = target
        target_msg = f" on {target}" if target else ""
        super().__init__(f"User {user_id} does not have permission for '{action}'{target_msg}")


class TransitionError(Exception):
    """Raised when a lifecycle action is not valid for the resolution's current state."""

    def __init__(self, resolution_id: str, action: str, current: str, reason: str | None = None):
        msg = f"Cannot '{action}' resolution {resolution_id} (state={current})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.resolution_id = resolution_id
        self.action = action
        self.current_state = current
        self.reason = reason
