"""Errors raised by the G2A Pay client."""

from typing import Any


class G2APayError(Exception):
    """Base class for every error raised by this package."""


class TransportError(G2APayError):
    """The HTTP call itself failed (network, TLS, timeout)."""

    def __init__(self, message: str, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class GatewayResponseError(G2APayError):
    """The gateway answered, but not with what the request needs."""

    def __init__(self, message: str, response: Any = None) -> None:
        super().__init__(f"{message} Response: {response!r}")
        self.response = response


class SignatureMismatch(G2APayError):
    """An IPN hash does not match the one computed locally."""

    def __init__(self, expected: str, supplied: str) -> None:
        super().__init__("IPN hash mismatch, notification is not trusted")
        self.expected = expected
        self.supplied = supplied
