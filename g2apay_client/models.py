"""Data models for G2A Pay checkouts and notifications."""

import logging
import os
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from .signing import Amount, format_amount, to_decimal

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}


class LineItem(BaseModel):
    """Represents a purchasable item (or a discount) in a checkout."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Item name shown on the payment page")
    sku: Optional[str] = Field(None, description="Merchant SKU, defaults to the name")
    id: Optional[str] = Field(None, description="Merchant item ID")
    price: Decimal = Field(description="Unit price")
    quantity: int = Field(default=1, ge=1, description="Quantity of the item")
    amount: Decimal = Field(description="Line total, negative for discounts")
    url: Optional[str] = Field(None, description="Item URL")
    extra: Optional[str] = Field(None, description="Free-form item details")
    discount: bool = Field(default=False, exclude=True, description="Item is a discount entry")

    @model_validator(mode="before")
    @classmethod
    def _default_amount(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("amount") is None and "price" in data:
            try:
                amount = to_decimal(data["price"]) * int(data.get("quantity", 1))
            except (InvalidOperation, TypeError, ValueError):
                # let field validation report the bad price/quantity
                return data
            data = {**data, "amount": amount}
        return data

    @model_validator(mode="after")
    def _check_sign(self) -> "LineItem":
        if self.amount < 0 and not self.discount:
            raise ValueError("Only discount items may have a negative amount")
        return self

    @classmethod
    def create(cls, name: str, price: Amount, quantity: int = 1, **metadata: Any) -> "LineItem":
        """
        Build an item whose amount is price * quantity.

        Args:
            name: Item name
            price: Unit price
            quantity: Number of units
            **metadata: Optional sku, id, url and extra
        """
        return cls(name=name, price=price, quantity=quantity, **metadata)

    def as_discount(self, percent_of: Amount, percent: Amount) -> "LineItem":
        """Return a discount of ``percent`` % of ``percent_of`` named after this item."""
        value = -(to_decimal(percent_of) * to_decimal(percent) / 100)
        return self._discounted(value)

    def as_fixed_discount(self, amount: Amount) -> "LineItem":
        """Return a discount of ``abs(amount)`` whatever the sign of ``amount``."""
        return self._discounted(-abs(to_decimal(amount)))

    def _discounted(self, value: Decimal) -> "LineItem":
        return self.model_copy(
            update={"price": value, "quantity": 1, "amount": value, "discount": True}
        )

    def to_form(self) -> dict[str, str]:
        """Project the item onto the createQuote ``items[]`` fields."""
        fields = {
            "sku": self.sku or self.name,
            "name": self.name,
            "amount": format_amount(self.amount),
            "qty": str(self.quantity),
            "price": format_amount(self.price),
        }
        for key in ("id", "url", "extra"):
            value = getattr(self, key)
            if value is not None:
                fields[key] = value
        return fields


class Cart(BaseModel):
    """Ordered list of line items with a running total."""

    items: list[LineItem] = Field(default_factory=list, description="Cart items")
    total: Decimal = Field(default=Decimal("0"), description="Running sum of item amounts")

    @model_validator(mode="after")
    def _check_total(self) -> "Cart":
        expected = sum((item.amount for item in self.items), Decimal("0"))
        if "total" not in self.model_fields_set:
            self.total = expected
        elif self.total != expected:
            raise ValueError(f"Cart total {self.total} does not match item amounts ({expected})")
        return self

    @property
    def item_count(self) -> int:
        """Number of entries in the cart, discounts included."""
        return len(self.items)

    def add_item(self, item: LineItem) -> "Cart":
        """Append an item and add its amount to the total."""
        self.items.append(item)
        self.total += item.amount
        logger.debug(f"Added item {item.name!r} ({item.amount}), total now {self.total}")
        return self

    def add_percent_discount(self, item: LineItem, percent: Amount) -> "Cart":
        """
        Add a discount worth ``percent`` % of the current total.

        The discount is fixed from the total at the moment of the call; items
        added afterwards do not change it.
        """
        return self.add_item(item.as_discount(self.total, percent))

    def add_fixed_discount(self, item: LineItem, amount: Amount) -> "Cart":
        """Add a discount of ``abs(amount)``."""
        return self.add_item(item.as_fixed_discount(amount))

    def to_form(self) -> list[dict[str, str]]:
        """Wire projection of all items, in insertion order."""
        return [item.to_form() for item in self.items]


class Credentials(BaseModel):
    """Merchant credentials for the gateway."""

    model_config = ConfigDict(frozen=True)

    api_hash: str = Field(description="Public API hash of the merchant")
    secret_key: str = Field(description="API secret shared with the gateway")
    merchant_email: Optional[str] = Field(None, description="Merchant account email")
    is_production: bool = Field(default=False, description="Use production endpoints")

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "Credentials":
        """
        Load credentials from environment variables.

        Reads G2APAY_API_HASH, G2APAY_SECRET_KEY, G2APAY_MERCHANT_EMAIL and
        G2APAY_PRODUCTION.

        Raises:
            ValueError: If the API hash or the secret key is missing
        """
        env = os.environ if environ is None else environ
        api_hash = env.get("G2APAY_API_HASH")
        secret_key = env.get("G2APAY_SECRET_KEY")
        if not api_hash or not secret_key:
            raise ValueError(
                "G2APAY_API_HASH and G2APAY_SECRET_KEY must be set in the environment"
            )

        is_production = env.get("G2APAY_PRODUCTION", "").strip().lower() in TRUTHY
        logger.info(
            f"Credentials loaded from environment ({'production' if is_production else 'test'})"
        )
        return cls(
            api_hash=api_hash,
            secret_key=secret_key,
            merchant_email=env.get("G2APAY_MERCHANT_EMAIL") or None,
            is_production=is_production,
        )


class IpnNotification(BaseModel):
    """Payment notification posted by the gateway."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="ignore")

    transaction_id: str = Field(
        validation_alias=AliasChoices("transactionId", "transaction_id")
    )
    order_id: str = Field(validation_alias=AliasChoices("userOrderId", "orderId", "order_id"))
    amount: Decimal
    hash: str
    type: Optional[str] = None
    status: Optional[str] = None
    currency: Optional[str] = None
    order_created_at: Optional[str] = Field(None, alias="orderCreatedAt")
    order_complete_at: Optional[str] = Field(None, alias="orderCompleteAt")
    refunded_amount: Optional[Decimal] = Field(None, alias="refundedAmount")
    provision_amount: Optional[Decimal] = Field(None, alias="provisionAmount")
