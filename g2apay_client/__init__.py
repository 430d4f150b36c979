"""Client library for the G2A Pay hosted payment gateway."""

from .exceptions import G2APayError, GatewayResponseError, SignatureMismatch, TransportError
from .g2apay_client import CheckoutSession, G2APayClient, SessionState
from .models import Cart, Credentials, IpnNotification, LineItem
from .signing import authorization_hash, checkout_hash, format_amount, ipn_hash
from .transport import HttpxTransport

__all__ = [
    "Cart",
    "CheckoutSession",
    "Credentials",
    "G2APayClient",
    "G2APayError",
    "GatewayResponseError",
    "HttpxTransport",
    "IpnNotification",
    "LineItem",
    "SessionState",
    "SignatureMismatch",
    "TransportError",
    "authorization_hash",
    "checkout_hash",
    "format_amount",
    "ipn_hash",
]
