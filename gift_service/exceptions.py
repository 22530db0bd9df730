"""
Service exceptions

Every exception carries the HTTP status, a machine readable code and a
message so the API layer can render it without inspecting the type.
"""


class GiftServiceException(Exception):
    """Base exception for the gift service"""

    status: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = "Uh oh, something went wrong!"):
        super().__init__(message)
        self.message = message


class UpstreamUnavailableError(GiftServiceException):
    """Social graph or usage source unreachable or answered non-2xx"""

    status = 503
    code = "upstream_unavailable"


class MalformedRecordError(GiftServiceException):
    """Upstream payload is missing required fields or is not an object"""

    status = 502
    code = "malformed_record"


class InvalidCursorError(GiftServiceException):
    """Pagination cursor failed verification"""

    status = 400
    code = "invalid_cursor"


class AccountNotFoundError(GiftServiceException):
    """Account bulk lookup returned nothing for the requested id"""

    status = 404
    code = "account_not_found"
