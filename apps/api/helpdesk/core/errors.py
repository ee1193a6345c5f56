"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``main.py`` renders them as ``{"detail": ...}`` with the
matching status code, the same body shape FastAPI uses for ``HTTPException``.
"""


class ServiceError(Exception):
    status_code = 500
    default_detail = "Internal error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(ServiceError):
    """Missing, invalid or expired credential."""

    status_code = 401
    default_detail = "Not authenticated"


class Forbidden(ServiceError):
    """Authenticated, but not permitted for this actor/resource/action."""

    status_code = 403
    default_detail = "Forbidden"


class NotFound(ServiceError):
    status_code = 404
    default_detail = "Not found"


class InvalidRequest(ServiceError):
    """Missing required field or value outside its enumerated set."""

    status_code = 422
    default_detail = "Invalid request"


class DependencyFailure(ServiceError):
    """The identity provider or the document store failed."""

    status_code = 502
    default_detail = "Upstream dependency failed"
