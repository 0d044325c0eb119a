from __future__ import annotations


class ServiceError(Exception):
    """Base error raised by the service layer.

    `kind` is the stable error category exposed to API clients; the message is
    meant to be shown to the user as-is.
    """

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    kind = "not_found"


class PreconditionError(ServiceError):
    kind = "precondition"


class ConflictError(ServiceError):
    kind = "conflict"


class PermissionDeniedError(ServiceError):
    kind = "forbidden"


HTTP_STATUS_BY_KIND = {
    NotFoundError.kind: 404,
    PreconditionError.kind: 400,
    ConflictError.kind: 409,
    PermissionDeniedError.kind: 403,
}
