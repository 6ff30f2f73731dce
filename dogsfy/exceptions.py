"""
Dogsfy Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions, one class per failure kind.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by the partition stores, the directory, the friendship graph
       and the account service; caught by global handlers.

Exception Hierarchy:
    DogsfyError (base)
    ├── ValidationError               → 400 Bad Request
    │   ├── InvalidCoordinateError    → 400 (lat/lng outside both hemispheres)
    │   └── MalformedIdentifierError  → 400 (id that is not a tag plus 32 hex chars)
    ├── NotFoundError                 → 404 Not Found
    ├── ConflictError                 → 409 Conflict (state does not allow the change)
    │   └── AlreadyExistsError        → 409 (duplicate username, email or friendship)
    └── StorageError                  → 500 Internal Server Error
        └── ConstraintViolationError  → 500 (a table-level unique constraint fired)

Propagation:
    Partition stores raise only StorageError. Lookups return None when a
    record is absent; the account service turns None into NotFoundError when
    the use case requires the record to exist.
"""

from typing import Any, Dict, Optional


class DogsfyError(Exception):
    """
    Base exception for all Dogsfy application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for storage errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DogsfyError):
    """
    Raised when input to a use case cannot be acted on.

    When:    Befriending yourself, unusable pagination values, and the two
             subclasses below.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidCoordinateError(ValidationError):
    """
    Raised when a coordinate does not fall into either hemisphere.

    Latitude must be within [-90, 90] and longitude within [-180, 180].
    """

    def __init__(self, latitude: Any, longitude: Any):
        super().__init__(
            message="Latitude and longitude are not valid",
            field="lat,lng",
            context={"lat": latitude, "lng": longitude},
        )
        self.latitude = latitude
        self.longitude = longitude


class MalformedIdentifierError(ValidationError):
    """
    Raised when an identifier is not a well-formed user id.

    A user id is its partition tag ("n" or "s") followed by 32 lowercase hex
    chars. Anything else is rejected before it reaches a partition.
    """

    def __init__(self, identifier: Any):
        super().__init__(
            message="Invalid id",
            field="id",
            context={"identifier": str(identifier)[:64]},
        )
        self.identifier = identifier


class NotFoundError(DogsfyError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown user id, befriending a missing user, deleting a
             friendship that does not exist.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(DogsfyError):
    """
    Raised when the current state does not allow the requested change.

    When:    Removing a friendship between users who are not friends.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        resource: str = "resource",
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The {resource} is in a conflicting state"
        ctx = context or {}
        ctx["resource"] = resource
        super().__init__(message=message, context=ctx)
        self.resource = resource


class AlreadyExistsError(ConflictError):
    """
    Raised when a pre-check finds a duplicate.

    When:    Username or email taken in either partition, users already friends.
    HTTP:    409 Conflict

    Detected by application-level pre-checks, not by storage constraints.
    A concurrent request can still slip between the check and the write.
    """

    def __init__(
        self,
        resource: str = "resource",
        field: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The {field or resource} already exists"
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(resource=resource, message=message, context=ctx)
        self.field = field


class StorageError(DogsfyError):
    """
    Raised when a partition operation fails.

    What:    A query, insert, update or delete against one partition failed,
             or an unexpected error crossed a service boundary.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        The partition name and exception type are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        partition: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if partition:
            ctx["partition"] = partition
        super().__init__(message=message, context=ctx)
        self.partition = partition


class ConstraintViolationError(StorageError):
    """
    Raised when an insert or update trips a table-level constraint.

    The user tables declare username and email unique within a partition;
    the friends table declares no constraint on the pair.
    """
