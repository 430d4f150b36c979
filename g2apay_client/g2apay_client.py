"""G2A Pay gateway client."""

import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .exceptions import GatewayResponseError, SignatureMismatch
from .models import Cart, Credentials, IpnNotification, LineItem
from .signing import (
    Amount,
    authorization_hash,
    checkout_hash,
    format_amount,
    hashes_match,
    ipn_hash,
)
from .transport import HttpxTransport

logger = logging.getLogger(__name__)

CHECKOUT_PRODUCTION_URL = "https://checkout.pay.g2a.com"
CHECKOUT_TEST_URL = "https://checkout.test.pay.g2a.com"
REST_PRODUCTION_URL = "https://pay.g2a.com/rest"
REST_TEST_URL = "https://www.test.pay.g2a.com/rest"

DEFAULT_CURRENCY = "EUR"


class SessionState(str, Enum):
    """Lifecycle of a checkout session."""

    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    REDIRECTED = "redirected"


class CheckoutSession:
    """
    Builder for a single checkout.

    Setters return the session so calls can be chained, and may be called in
    any order; nothing is validated until the quote is created. The redirect
    URL is requested once and then cached for the lifetime of the session.
    """

    def __init__(
        self,
        client: "G2APayClient",
        order_id: Optional[int] = None,
        currency: str = DEFAULT_CURRENCY,
        url_success: Optional[str] = None,
        url_failure: Optional[str] = None,
        email: Optional[str] = None,
    ) -> None:
        self.client = client
        self.order_id = order_id
        self.currency = currency
        self.url_success = url_success
        self.url_failure = url_failure
        self.email = email
        self.cart = Cart()
        self._redirect_url: Optional[str] = None
        self._touched = any(
            value is not None for value in (order_id, url_success, url_failure, email)
        ) or currency != DEFAULT_CURRENCY

    @property
    def state(self) -> SessionState:
        """Where the session is in its lifecycle."""
        if self._redirect_url:
            return SessionState.REDIRECTED
        if self._touched:
            return SessionState.CONFIGURED
        return SessionState.UNCONFIGURED

    @property
    def redirect_url(self) -> Optional[str]:
        """Cached redirect URL, None until get_redirect_url() succeeded."""
        return self._redirect_url

    @property
    def items(self) -> list[LineItem]:
        """Copy of the cart items, in insertion order."""
        return list(self.cart.items)

    @property
    def total(self) -> Decimal:
        """Running total of the cart."""
        return self.cart.total

    def _touch(self) -> None:
        if self._redirect_url:
            logger.warning("Checkout already redirected, changes will not be sent")
        self._touched = True

    def set_order_id(self, order_id: int) -> "CheckoutSession":
        self._touch()
        self.order_id = order_id
        return self

    def set_currency(self, currency: str) -> "CheckoutSession":
        self._touch()
        self.currency = currency
        return self

    def set_url_success(self, url: str) -> "CheckoutSession":
        self._touch()
        self.url_success = url
        return self

    def set_url_failure(self, url: str) -> "CheckoutSession":
        self._touch()
        self.url_failure = url
        return self

    def set_email(self, email: Optional[str]) -> "CheckoutSession":
        """Set the customer email (optional, sent only when set)."""
        self._touch()
        self.email = email
        return self

    def add_item(self, item: LineItem) -> "CheckoutSession":
        self._touch()
        self.cart.add_item(item)
        return self

    def add_percent_discount(self, item: LineItem, percent: Amount) -> "CheckoutSession":
        """Add a discount of ``percent`` % of the total as it is right now."""
        self._touch()
        self.cart.add_percent_discount(item, percent)
        return self

    def add_fixed_discount(self, item: LineItem, amount: Amount) -> "CheckoutSession":
        self._touch()
        self.cart.add_fixed_discount(item, amount)
        return self

    def build_payload(self) -> dict[str, Any]:
        """
        Build the createQuote form fields.

        Returns:
            Payload with the checkout hash; ``email`` is present only if set
        """
        credentials = self.client.credentials
        payload: dict[str, Any] = {
            "api_hash": credentials.api_hash,
            "order_id": self.order_id,
            "hash": checkout_hash(
                self.order_id, self.cart.total, self.currency, credentials.secret_key
            ),
            "amount": format_amount(self.cart.total),
            "currency": self.currency,
            "url_ok": self.url_success,
            "url_failure": self.url_failure,
            "items": self.cart.to_form(),
        }
        if self.email:
            payload["email"] = self.email
        return payload

    def get_redirect_url(self) -> str:
        """
        Get the URL of the hosted payment page for this checkout.

        The first call creates a quote on the gateway; later calls return the
        cached URL without any request.

        Returns:
            URL the customer must be redirected to

        Raises:
            GatewayResponseError: If the gateway does not return a token
            TransportError: If the request fails
        """
        if self._redirect_url:
            return self._redirect_url

        base_url = self.client.checkout_url(self.client.is_production())
        logger.info(
            f"Creating quote for order {self.order_id}: "
            f"{format_amount(self.cart.total)} {self.currency}, {self.cart.item_count} items"
        )
        result = self.client.transport.send(
            "POST", f"{base_url}/index/createQuote", fields=self.build_payload()
        )

        token = result.get("token") if isinstance(result, dict) else None
        if not isinstance(token, str) or not token:
            logger.error(f"createQuote for order {self.order_id} returned no token")
            raise GatewayResponseError(
                "Returned token is invalid, please check the sent parameters.",
                response=result,
            )

        self._redirect_url = f"{base_url}/index/gateway?token={token}"
        logger.info(f"Quote created for order {self.order_id}")
        return self._redirect_url


class G2APayClient:
    """Client for the G2A Pay checkout and REST APIs."""

    def __init__(self, credentials: Credentials, transport: Optional[Any] = None) -> None:
        """
        Initialize the client.

        Args:
            credentials: Merchant credentials
            transport: Object with a ``send(method, url, fields, headers)``
                method; an HttpxTransport is created when omitted
        """
        self.credentials = credentials
        self._owns_transport = transport is None
        self.transport = transport if transport is not None else HttpxTransport()

    def is_production(self) -> bool:
        return self.credentials.is_production

    def is_test(self) -> bool:
        return not self.credentials.is_production

    @staticmethod
    def checkout_url(production: bool) -> str:
        """Base URL of the checkout API for the given environment."""
        return CHECKOUT_PRODUCTION_URL if production else CHECKOUT_TEST_URL

    @staticmethod
    def rest_url(production: bool) -> str:
        """Base URL of the authorized REST API for the given environment."""
        return REST_PRODUCTION_URL if production else REST_TEST_URL

    def checkout(self, **fields: Any) -> CheckoutSession:
        """
        Start a new checkout.

        Args:
            **fields: Any of order_id, currency, url_success, url_failure, email

        Returns:
            A fresh CheckoutSession bound to this client
        """
        return CheckoutSession(self, **fields)

    def authorization_header(self) -> str:
        credentials = self.credentials
        signature = authorization_hash(
            credentials.api_hash, credentials.merchant_email, credentials.secret_key
        )
        return f"{credentials.api_hash}; {signature}"

    def authorized_request(
        self,
        uri: str,
        fields: Optional[dict[str, Any]] = None,
        post: bool = True,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """
        Call the REST API as the merchant.

        Args:
            uri: Path below the REST base URL, starting with "/"
            fields: Form fields for POST requests
            post: Send a POST (True) or a GET (False)
            headers: Extra headers; Authorization is always set by the client

        Returns:
            Decoded response body
        """
        if not self.credentials.merchant_email:
            logger.warning("No merchant email configured, authorized requests will likely fail")

        request_headers = dict(headers or {})
        request_headers["Authorization"] = self.authorization_header()
        url = f"{self.rest_url(self.is_production())}{uri}"
        if post:
            return self.transport.send("POST", url, fields=fields or {}, headers=request_headers)
        return self.transport.send("GET", url, headers=request_headers)

    def get_transaction_details(self, transaction_id: str) -> Any:
        """Get the complete details of a payment by its transaction ID."""
        logger.info(f"Fetching transaction {transaction_id}")
        return self.authorized_request(f"/transactions/{transaction_id}", post=False)

    def calculate_ipn_hash(self, transaction_id: Any, order_id: Any, amount: Amount) -> str:
        return ipn_hash(transaction_id, order_id, amount, self.credentials.secret_key)

    def verify_ipn(
        self, notification: Union[IpnNotification, Mapping[str, Any]]
    ) -> IpnNotification:
        """
        Check that a notification really comes from the gateway.

        Args:
            notification: Parsed notification or the raw posted fields

        Returns:
            The parsed notification

        Raises:
            SignatureMismatch: If the hash does not match
            pydantic.ValidationError: If required fields are missing
        """
        if not isinstance(notification, IpnNotification):
            notification = IpnNotification.model_validate(dict(notification))

        expected = self.calculate_ipn_hash(
            notification.transaction_id, notification.order_id, notification.amount
        )
        if not hashes_match(expected, notification.hash):
            logger.warning(
                f"Rejected IPN for transaction {notification.transaction_id}: hash mismatch"
            )
            raise SignatureMismatch(expected, notification.hash)

        logger.info(f"IPN for transaction {notification.transaction_id} verified")
        return notification

    def is_valid_ipn(self, notification: Union[IpnNotification, Mapping[str, Any]]) -> bool:
        try:
            self.verify_ipn(notification)
        except SignatureMismatch:
            return False
        return True

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> "G2APayClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
