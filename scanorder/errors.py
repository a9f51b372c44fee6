from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    NETWORK = "network"
    AUTH = "auth"
    VALIDATION = "validation"
    SERVER = "server"
    MALFORMED = "malformed"

    @classmethod
    def for_status(cls, code: int) -> "ErrorKind":
        if code in (401, 403):
            return cls.AUTH
        if 400 <= code < 500:
            return cls.VALIDATION
        return cls.SERVER

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.NETWORK, ErrorKind.SERVER, ErrorKind.MALFORMED)


class ClientError(Exception):
    """An error classified by the boundary that detected it.

    `kind` is set once, from the transport failure or the HTTP status, and
    callers branch on it instead of on the message text.
    """

    def __init__(self, kind: ErrorKind, message: str, status: int | None = None, data: Any = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.data = data

    def __repr__(self) -> str:
        return f"ClientError(kind={self.kind.value!r}, status={self.status!r}, message={self.message!r})"


def validation_error(message: str) -> ClientError:
    return ClientError(ErrorKind.VALIDATION, message)


def message_from_body(data: Any, default: str) -> str:
    """Pull a human readable message out of the backend's error shapes."""
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        for key in ("message", "detail", "error"):
            if data.get(key):
                return str(data[key])
    return default
