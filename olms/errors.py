"""Error kinds surfaced by the procedure layer.

Every kind is an ``HTTPException`` carrying a stable ``code`` so clients can
tell "not logged in" apart from "logged in with the wrong role" without
parsing messages. ``main`` renders them as ``{"detail": ..., "code": ...}``.

Persistence failures are not listed here: any ``SQLAlchemyError`` escaping a
procedure is rendered by ``main.persistence_error_handler`` as a 500 with
code ``INTERNAL_SERVER_ERROR``. The driver message is added as
``diagnostic`` only while the ``DEBUG`` setting is on.
"""
from fastapi import HTTPException, status


class ProcedureError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"
    default_detail = "bad request"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class BadRequest(ProcedureError):
    pass


class MissingCredentials(ProcedureError):
    code = "MISSING_CREDENTIALS"
    default_detail = "Email and password are required"


class InvalidCredentials(ProcedureError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    default_detail = "Invalid credentials"


class Unauthenticated(ProcedureError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_detail = "You must be logged in to access this resource"


class Forbidden(ProcedureError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_detail = "Access denied"


class NotFound(ProcedureError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_detail = "not found"


class UpstreamFailure(ProcedureError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_FAILURE"
    default_detail = "ERP system unavailable"
