"""
Workflow-wide exception hierarchy.

Services raise these; blueprints register handlers against them once and
get consistent HTTP status codes everywhere.  The decision router only ever
surfaces these types to its callers, never a storage-level error.

Usage:
    from traveldesk.core.exceptions import NotFoundError, InvalidTransitionError

    raise NotFoundError(resource="Application", resource_id=app_id)
    raise InvalidTransitionError("reject", current_status="ARCHIVED")
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist for the caller.

    Used for BOTH genuinely missing records AND records the caller may not
    read.  A 403 would confirm the record exists; a 404 does not.

    Args:
        resource: Human-readable entity name (e.g. "Application").
        resource_id: The key that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ForbiddenError(Exception):
    """Raised when an authenticated caller lacks the role or ownership an action needs.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "Forbidden", required_roles: tuple[str, ...] = ()) -> None:
        self.required_roles = tuple(required_roles)
        super().__init__(message)


class ValidationError(Exception):
    """Raised when input is missing or malformed for the requested action.

    Also raised by the engine when a transition guard fails on application
    data (dates, minister / HOD emails).  Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidTransitionError(Exception):
    """Raised when an action is not legal from the application's current status.

    Maps to HTTP 409.  Also the error a losing concurrent writer sees once its
    guard is re-evaluated against the fresher state.
    """

    def __init__(self, action: str, current_status: str, reason: str | None = None) -> None:
        self.action = action
        self.current_status = current_status
        self.reason = reason
        msg = f"Cannot '{action}' an application in status {current_status}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PersistenceConflictError(Exception):
    """Raised when a compare-and-swap lost a race twice in a row.

    The router retries once automatically; this only escapes when the retry
    also loses while the guard still holds.  Maps to HTTP 409.
    """

    def __init__(self, application_id: str, expected_version: int) -> None:
        self.application_id = application_id
        self.expected_version = expected_version
        super().__init__(
            f"Application id={application_id} changed concurrently "
            f"(expected version {expected_version})"
        )


class NotificationDeliveryFailed(Exception):
    """Raised inside the notification dispatcher when one delivery fails.

    Never propagated to the caller of a transition: the dispatcher logs it
    and records the failed EmailLog row.
    """

    def __init__(self, recipient: str, template_key: str, cause: Exception | None = None) -> None:
        self.recipient = recipient
        self.template_key = template_key
        self.cause = cause
        msg = f"Delivery of '{template_key}' to {recipient} failed"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)
