"""Domain errors raised by catalog operations.

Each error carries the HTTP status it maps to; ``catalog.main`` turns any
``CatalogError`` into a ``{"error": message}`` JSON response, so a new error
kind only needs a subclass here.
"""


class CatalogError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(CatalogError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationRequired(CatalogError):
    status_code = 401
    default_message = "Authentication required"

    def __init__(self, message: str | None = None, clear_session: bool = False):
        super().__init__(message)
        # ask the error handler to drop the session cookie as well
        self.clear_session = clear_session


class Forbidden(CatalogError):
    status_code = 403
    default_message = "Admin access required"


class NotFound(CatalogError):
    status_code = 404
    default_message = "Not found"


class Conflict(CatalogError):
    status_code = 409
    default_message = "Already exists"
