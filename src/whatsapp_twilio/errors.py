from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    RATE_LIMIT = "rate_limit"
    CONNECTION = "connection"
    UPSTREAM = "upstream"


class ErrorCode(IntEnum):
    MISSING_CONFIG = 1001
    INVALID_PHONE_NUMBER = 1002
    INVALID_TEMPLATE_SID = 1003
    INVALID_TEMPLATE_VARIABLES = 1004
    MISSING_SIGNATURE = 1005
    MISSING_WEBHOOK_URL = 1006
    INVALID_SIGNATURE = 1007
    MISSING_MESSAGE_SID = 1008
    INVALID_PARAMETERS = 1009
    MISSING_TEMPLATE_VARIABLE = 1010
    INVALID_TEMPLATE_VARIABLE_TYPE = 1011
    TEMPLATE_NOT_FOUND = 1012
    EMPTY_MESSAGE = 1015
    MESSAGE_TOO_LONG = 1016
    INVALID_ENCODING = 1017

    LIMIT_EXCEEDED = 2001
    TWILIO_LIMIT_EXCEEDED = 2002

    AUTHENTICATION_FAILED = 3001
    RESOURCE_NOT_FOUND = 3002

    UPSTREAM_ERROR = 500


class WhatsAppError(Exception):
    """
    The one error type raised by this package.

    Callers branch on ``kind``; ``code`` is machine-readable (our own codes,
    or the Twilio error code for upstream failures).
    """

    def __init__(self, kind: ErrorKind, code: int, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.code = int(code)
        self.message = message

    def __repr__(self) -> str:
        return f"WhatsAppError(kind={self.kind.value!r}, code={self.code}, message={self.message!r})"

    def to_response(self) -> dict[str, Any]:
        return {
            "status": "error",
            "message": self.message,
            "code": self.code,
            "kind": self.kind.value,
        }


def configuration_error(message: str, code: int = ErrorCode.MISSING_CONFIG) -> WhatsAppError:
    return WhatsAppError(ErrorKind.CONFIGURATION, code, message)


def validation_error(message: str, code: int) -> WhatsAppError:
    return WhatsAppError(ErrorKind.VALIDATION, code, message)


def rate_limit_error(message: str, code: int = ErrorCode.LIMIT_EXCEEDED) -> WhatsAppError:
    return WhatsAppError(ErrorKind.RATE_LIMIT, code, message)


def connection_error(message: str, code: int) -> WhatsAppError:
    return WhatsAppError(ErrorKind.CONNECTION, code, message)


def upstream_error(message: str, code: int | None) -> WhatsAppError:
    return WhatsAppError(ErrorKind.UPSTREAM, code or ErrorCode.UPSTREAM_ERROR, message)
