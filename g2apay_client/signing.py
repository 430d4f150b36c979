"""Request signatures for the G2A Pay gateway.

Every signature is the SHA-256 hex digest of a plain concatenation of fields.
Field order and amount formatting must match what the gateway computes on its
side, so none of these functions may reorder or reformat their inputs.
"""

import hashlib
import hmac
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Union

Amount = Union[Decimal, int, float, str]

CENTS = Decimal("0.01")


def to_decimal(value: Amount) -> Decimal:
    """Convert a price-like value to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    # str() of a float is its shortest round-trip form, e.g. 19.99 -> "19.99"
    return Decimal(str(value))


def format_amount(value: Amount) -> str:
    """
    Render an amount the way the gateway does before hashing.

    The value is rounded to cents (half away from zero) and then printed in its
    shortest form, so trailing zeros and a dangling decimal point are dropped.

    Examples:
        10 -> "10", 10.50 -> "10.5", 10.567 -> "10.57", 19.99 -> "19.99"

    Raises:
        ValueError: If the value is not a finite number that fits in 28 digits
    """
    try:
        rounded = to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    if not rounded.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    if rounded == 0:
        return "0"
    text = format(rounded, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _field(value: Any) -> str:
    return "" if value is None else str(value)


def _sha256(payload: str) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def checkout_hash(order_id: Any, total: Amount, currency: str, secret_key: str) -> str:
    """Hash sent with createQuote: {orderId}{amount}{currency}{secret}."""
    return _sha256(f"{_field(order_id)}{format_amount(total)}{currency}{secret_key}")


def authorization_hash(api_hash: str, merchant_email: Optional[str], secret_key: str) -> str:
    """Static credential proof for the REST API: {apiHash}{merchantEmail}{secret}."""
    return _sha256(f"{api_hash}{_field(merchant_email)}{secret_key}")


def ipn_hash(transaction_id: Any, order_id: Any, amount: Amount, secret_key: str) -> str:
    """Hash of an IPN notification: {transactionId}{orderId}{amount}{secret}."""
    return _sha256(
        f"{_field(transaction_id)}{_field(order_id)}{format_amount(amount)}{secret_key}"
    )


def hashes_match(expected: str, supplied: Optional[str]) -> bool:
    """Compare a locally computed hash with one received from the gateway."""
    if not supplied:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))
