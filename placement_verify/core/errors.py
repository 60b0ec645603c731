"""
Domain error taxonomy.

Every domain failure carries (status, code, message). The status is the
HTTP-equivalent code the transport layer returns as-is:

- 400 ``invalid_<field>``      malformed or out-of-range input
- 404 ``*_not_found``          missing entity or owner mismatch
- 409 precondition codes       valid input, wrong lifecycle state

Configuration problems (an incomplete store) are not domain errors and
raise StoreConfigurationError instead.
"""


class DomainError(Exception):
    """Base class for errors the API adapter translates into responses."""

    def __init__(self, status: int, code: str, message: str):
        super().__init__(message)
        self.status = status
        self.code = code
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, code={self.code!r})"


class OrganizationsApiError(DomainError):
    """Raised by OrganizationsService."""


class ProfileApiError(DomainError):
    """Raised by ProfileService."""


class StoreConfigurationError(RuntimeError):
    """Raised when a service is constructed without a usable store."""
