"""
Posts API Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for every error outcome the API returns.
How:   Each exception carries a user-facing message, an optional context dict
       (logged, never returned) and the HTTP status code it maps to.
Who:   Raised by the store adapter, services and routes; rendered by the
       global handlers registered in main.py.

Exception Hierarchy:
    PostsApiError (base)
    ├── ValidationError          → 400 Bad Request (missing or malformed field)
    ├── AuthenticationError      → 401 Unauthorized (missing/invalid/expired token)
    ├── AuthorizationError       → 401 or 403 (authenticated but not permitted)
    ├── NotFoundError            → 404 Not Found
    ├── MethodNotAllowedError    → 405 Method Not Allowed
    ├── UnsupportedMediaError    → 406 Not Acceptable
    └── UpstreamError            → 502 Bad Gateway (identity provider failure)

Datastore client failures are NOT wrapped: google.api_core exceptions propagate
unchanged and main.py maps them to 502 as well.
"""

from typing import Any, Dict, Iterable, Optional


class PostsApiError(Exception):
    """
    Base exception for all Posts API errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info (logged but NOT returned to client)
        status_code: HTTP status the global handler responds with
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PostsApiError):
    """
    Raised when the request body is missing a required attribute or is malformed.

    HTTP:    400 Bad Request
    When:    Checked before any datastore call, so a rejected request never
             persists anything.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "The request object is missing at least one of the required attributes",
        missing: Optional[Iterable[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if missing:
            ctx["missing"] = sorted(missing)
        super().__init__(message=message, context=ctx)


class AuthenticationError(PostsApiError):
    """
    Raised when a bearer token is missing, malformed, expired or fails verification.

    HTTP:    401 Unauthorized
    The message is identical for every cause; the specific reason only goes
    into the context for server-side logs.
    """

    status_code = 401
    MESSAGE = "Missing or invalid bearer token"

    def __init__(self, reason: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        if reason:
            ctx["reason"] = reason
        super().__init__(message=self.MESSAGE, context=ctx)


class AuthorizationError(PostsApiError):
    """
    Raised when an authenticated subject may not act on a resource.

    HTTP:    401 for mutations by a non-owner, 403 for reading a private post.
    """

    status_code = 403

    def __init__(
        self,
        message: str = "You do not have permission to access this resource",
        status_code: int = 403,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status_code = status_code


class NotFoundError(PostsApiError):
    """
    Raised when a requested resource does not exist.

    The datastore returns None for absent keys; services and routes convert that
    into this exception so the handler can answer 404.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"No {resource} with this {resource}_id exists"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class MethodNotAllowedError(PostsApiError):
    """Raised for bulk operations the API refuses outright (e.g. DELETE /posts)."""

    status_code = 405

    def __init__(self, allowed: Iterable[str] = ("GET", "POST"), context: Optional[Dict[str, Any]] = None):
        self.allowed = list(allowed)
        super().__init__(
            message="This method is not allowed on the collection",
            context=context,
        )


class UnsupportedMediaError(PostsApiError):
    """
    Raised when the client's Accept header rules out JSON.

    HTTP:    406 Not Acceptable
    """

    status_code = 406

    def __init__(self, accept: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        if accept:
            ctx["accept"] = accept
        super().__init__(
            message="The server only supports application/json responses",
            context=ctx,
        )


class UpstreamError(PostsApiError):
    """
    Raised when the identity provider cannot be reached or answers with an error.

    HTTP:    502 Bad Gateway
    The original exception is chained (raise ... from exc) and logged by the
    handler; it is never translated into a client error.
    """

    status_code = 502

    def __init__(
        self,
        service: str = "upstream service",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["service"] = service
        super().__init__(message=f"The {service} is unavailable. Please try again later.", context=ctx)
