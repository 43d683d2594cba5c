"""Outcome of one API call: a success payload or a classified failure."""

from dataclasses import dataclass, field
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER = "server"
    NETWORK = "network"
    INVALID_RESPONSE = "invalid_response"


_STATUS_KINDS = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.AUTHENTICATION,
    403: ErrorKind.AUTHORIZATION,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
}


def kind_for_status(status: int) -> ErrorKind:
    if status >= 500:
        return ErrorKind.SERVER
    return _STATUS_KINDS.get(status, ErrorKind.VALIDATION)


@dataclass
class ApiResult:
    success: bool
    data: dict = field(default_factory=dict)
    error: str | None = None
    kind: ErrorKind | None = None
    status: int | None = None

    @classmethod
    def ok(cls, data: dict, status: int | None = None) -> "ApiResult":
        return cls(success=True, data=data, status=status)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str, status: int | None = None, data: dict | None = None) -> "ApiResult":
        return cls(success=False, data=data or {}, error=error, kind=kind, status=status)

    def get(self, key: str, default=None):
        return self.data.get(key, default)
