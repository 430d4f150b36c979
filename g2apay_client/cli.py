"""Command-line interface for the G2A Pay client."""

import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Optional

from .g2apay_client import DEFAULT_CURRENCY, G2APayClient
from .models import Credentials, LineItem
from .signing import to_decimal


def _item(value: str) -> tuple[str, LineItem]:
    parts = value.split(":")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"Expected NAME:PRICE[:QTY], got {value!r}")
    try:
        quantity = int(parts[2]) if len(parts) == 3 else 1
        return "item", LineItem.create(parts[0], parts[1], quantity)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid item {value!r}: {e}")


def _discount(kind: str):
    def parse(value: str) -> tuple[str, LineItem, Decimal]:
        name, sep, number = value.rpartition(":")
        if not sep or not name:
            raise argparse.ArgumentTypeError(f"Expected NAME:VALUE, got {value!r}")
        try:
            amount = to_decimal(number)
        except InvalidOperation:
            raise argparse.ArgumentTypeError(f"Invalid discount value in {value!r}")
        if not amount.is_finite():
            raise argparse.ArgumentTypeError(f"Invalid discount value in {value!r}")
        return kind, LineItem.create(name, 0), amount

    return parse


def _checkout(client: G2APayClient, args: argparse.Namespace) -> int:
    session = client.checkout(
        order_id=args.order_id,
        currency=args.currency,
        url_success=args.url_ok,
        url_failure=args.url_failure,
        email=args.email,
    )
    # entries keep command-line order, percent discounts depend on it
    for entry in args.entries or []:
        if entry[0] == "item":
            session.add_item(entry[1])
        elif entry[0] == "percent":
            session.add_percent_discount(entry[1], entry[2])
        else:
            session.add_fixed_discount(entry[1], entry[2])

    print(session.get_redirect_url())
    return 0


def _transaction(client: G2APayClient, args: argparse.Namespace) -> int:
    details = client.get_transaction_details(args.transaction_id)
    print(json.dumps(details, indent=2, default=str))
    return 0


def _ipn_hash(client: G2APayClient, args: argparse.Namespace) -> int:
    print(client.calculate_ipn_hash(args.transaction_id, args.order_id, args.amount))
    return 0


def _verify_ipn(client: G2APayClient, args: argparse.Namespace) -> int:
    client.verify_ipn(
        {
            "transactionId": args.transaction_id,
            "userOrderId": args.order_id,
            "amount": args.amount,
            "hash": args.hash,
        }
    )
    print("valid")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="g2apay-client",
        description="G2A Pay client - create checkouts and verify payment notifications. "
        "Credentials are read from G2APAY_API_HASH, G2APAY_SECRET_KEY, "
        "G2APAY_MERCHANT_EMAIL and G2APAY_PRODUCTION.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    checkout = subparsers.add_parser("checkout", help="Create a quote and print the redirect URL")
    checkout.add_argument("--order-id", type=int, required=True, help="Merchant order ID")
    checkout.add_argument("--url-ok", required=True, help="URL after a successful payment")
    checkout.add_argument("--url-failure", required=True, help="URL after a failed payment")
    checkout.add_argument(
        "--currency", default=DEFAULT_CURRENCY, help=f"Currency code (default: {DEFAULT_CURRENCY})"
    )
    checkout.add_argument("--email", help="Customer email")
    checkout.add_argument(
        "--item", dest="entries", action="append", type=_item, metavar="NAME:PRICE[:QTY]",
        help="Add an item (repeatable)",
    )
    checkout.add_argument(
        "--percent-discount", dest="entries", action="append", type=_discount("percent"),
        metavar="NAME:PERCENT", help="Add a discount of PERCENT %% of the total so far",
    )
    checkout.add_argument(
        "--fixed-discount", dest="entries", action="append", type=_discount("fixed"),
        metavar="NAME:AMOUNT", help="Add a fixed discount",
    )
    checkout.set_defaults(handler=_checkout)

    transaction = subparsers.add_parser("transaction", help="Show the details of a transaction")
    transaction.add_argument("transaction_id", help="Gateway transaction ID")
    transaction.set_defaults(handler=_transaction)

    for name, handler, help_text in (
        ("ipn-hash", _ipn_hash, "Print the hash of an IPN notification"),
        ("verify-ipn", _verify_ipn, "Verify the hash of an IPN notification"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--transaction-id", required=True)
        sub.add_argument("--order-id", required=True)
        sub.add_argument("--amount", required=True)
        if name == "verify-ipn":
            sub.add_argument("--hash", required=True, help="Hash received from the gateway")
        sub.set_defaults(handler=handler)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        stream=sys.stderr,
    )

    try:
        credentials = Credentials.from_env()
        with G2APayClient(credentials) as client:
            exit_code = args.handler(client, args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
