"""
Custom Application Exceptions

Each exception carries the HTTP status and error label used when it is
rendered as an ``{error, message}`` response body.
"""


class GIMSException(Exception):
    """Base exception for GIMS application"""
    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GIMSException):
    """Raised when data validation fails"""
    status_code = 400
    error = "Bad Request"

    def __init__(self, message: str, details: list = None):
        super().__init__(message)
        self.details = details


class BusinessRuleError(GIMSException):
    """Raised when business rules forbid the operation"""
    status_code = 400
    error = "Bad Request"


class NotFoundError(GIMSException):
    """Raised when a referenced entity does not exist"""
    status_code = 404
    error = "Not Found"


class ConflictError(GIMSException):
    """Raised on duplicate keys or invalid state transitions"""
    status_code = 409
    error = "Conflict"


class AuthenticationError(GIMSException):
    """Raised when the bearer token is missing or invalid"""
    status_code = 401
    error = "Unauthorized"


class InsufficientPermissionsError(GIMSException):
    """Raised when user lacks required permissions"""
    status_code = 403
    error = "Forbidden"
