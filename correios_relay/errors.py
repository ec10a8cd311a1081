"""
Error hierarchy for the Correios relay.
Each error knows the HTTP status and the message shown to the client.
"""

from typing import Optional


INVALID_CODES_MESSAGE = "Algum dos códigos enviados estava errado."
SERVER_ERROR_MESSAGE = "Houve um erro no servidor."


class RelayError(Exception):
    """Base exception for all relay errors."""

    status: int = 500
    client_message: str = SERVER_ERROR_MESSAGE

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.cause is not None:
            return f"{message}: {self.cause!r}"
        return message


class DecodeError(RelayError):
    """Malformed client request body."""

    status = 400
    client_message = INVALID_CODES_MESSAGE


class UpstreamError(RelayError):
    """Carrier answered with a malformed or unexpected tracking response."""

    status = 400
    client_message = INVALID_CODES_MESSAGE

    def __init__(
        self,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        super().__init__(message, cause=cause)


class AuthError(RelayError):
    """Could not obtain an access token from the carrier."""

    status = 500

    def __init__(
        self,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        super().__init__(message, cause=cause)


class EncodeError(RelayError):
    """Internal serialization failure."""

    status = 500


class TransportError(RelayError):
    """Network-level failure building or sending the outbound request."""

    status = 500

    def __init__(
        self,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        super().__init__(message, cause=cause)
