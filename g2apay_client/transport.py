"""HTTP transport used by the G2A Pay client."""

import logging
from typing import Any, Optional

import httpx

from .exceptions import TransportError

logger = logging.getLogger(__name__)


def build_form_fields(fields: Any, prefix: Optional[str] = None) -> dict[str, str]:
    """
    Flatten nested fields into form keys the gateway understands.

    Nested dicts and lists become bracketed keys, e.g.
    ``{"items": [{"name": "A"}]}`` -> ``{"items[0][name]": "A"}``.
    ``None`` values are dropped and booleans become "1"/"0".
    """
    pairs: dict[str, str] = {}
    entries = fields.items() if isinstance(fields, dict) else enumerate(fields)
    for key, value in entries:
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, (dict, list, tuple)):
            pairs.update(build_form_fields(value, name))
        elif isinstance(value, bool):
            pairs[name] = "1" if value else "0"
        else:
            pairs[name] = str(value)
    return pairs


class HttpxTransport:
    """Sends requests to the gateway with httpx."""

    def __init__(
        self,
        timeout: float = 30.0,
        retries: int = 0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            timeout: Request timeout in seconds
            retries: Connection retries handled by httpx
            client: Pre-built httpx client (takes precedence over timeout/retries)
        """
        self.client = client or httpx.Client(
            timeout=timeout,
            verify=True,
            transport=httpx.HTTPTransport(retries=retries, verify=True),
            headers={"Accept": "application/json"},
        )

    def send(
        self,
        method: str,
        url: str,
        fields: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """
        Send a request and decode the response body.

        Args:
            method: HTTP method
            url: Absolute URL
            fields: Form fields, sent form-encoded
            headers: Extra request headers

        Returns:
            Decoded JSON, or the raw text when the body is not JSON

        Raises:
            TransportError: If the request could not be completed
        """
        data = build_form_fields(fields) if fields else None
        logger.info(f"{method} {url}")
        try:
            response = self.client.request(method, url, data=data, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e

        logger.info(f"Response: status={response.status_code}")
        try:
            return response.json()
        except ValueError:
            logger.warning(f"Response from {url} is not JSON")
            return response.text

    def close(self) -> None:
        """Close the underlying httpx client."""
        self.client.close()

    def __enter__(self) -> "HttpxTransport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
