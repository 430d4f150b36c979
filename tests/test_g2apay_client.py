from decimal import Decimal

import pytest

from g2apay_client import (
    G2APayClient,
    GatewayResponseError,
    LineItem,
    SessionState,
    SignatureMismatch,
    TransportError,
)
from g2apay_client.g2apay_client import (
    CHECKOUT_PRODUCTION_URL,
    CHECKOUT_TEST_URL,
    REST_PRODUCTION_URL,
    REST_TEST_URL,
)
from g2apay_client.signing import ipn_hash


def _configured_session(client):
    return (
        client.checkout()
        .set_order_id(1001)
        .set_url_success("https://shop.example/ok")
        .set_url_failure("https://shop.example/fail")
        .add_item(LineItem.create("Game key", Decimal("19.99")))
    )


def test_environment_urls():
    assert G2APayClient.checkout_url(True) == CHECKOUT_PRODUCTION_URL
    assert G2APayClient.checkout_url(False) == CHECKOUT_TEST_URL
    assert G2APayClient.rest_url(True) == REST_PRODUCTION_URL
    assert G2APayClient.rest_url(False) == REST_TEST_URL


def test_environment_flags(client, production_credentials, make_transport):
    assert client.is_test()
    assert not client.is_production()
    production = G2APayClient(production_credentials, transport=make_transport())
    assert production.is_production()


def test_session_states(client):
    session = client.checkout()
    assert session.state is SessionState.UNCONFIGURED
    session.set_currency("USD")
    assert session.state is SessionState.CONFIGURED
    session.get_redirect_url()
    assert session.state is SessionState.REDIRECTED


def test_checkout_kwargs_configure_session(client):
    session = client.checkout(order_id=7, url_success="https://shop.example/ok")
    assert session.state is SessionState.CONFIGURED
    assert session.order_id == 7
    assert session.currency == "EUR"


def test_build_payload(client):
    session = _configured_session(client)
    payload = session.build_payload()
    assert payload == {
        "api_hash": "apiHASH",
        "order_id": 1001,
        # sha256("100119.99EURs3cr3t")
        "hash": "f39f765bd70224caf5060a6562686f7963e1afbb9d70128faffc48eee043025a",
        "amount": "19.99",
        "currency": "EUR",
        "url_ok": "https://shop.example/ok",
        "url_failure": "https://shop.example/fail",
        "items": [
            {"sku": "Game key", "name": "Game key", "amount": "19.99", "qty": "1", "price": "19.99"}
        ],
    }


def test_build_payload_includes_email_only_when_set(client):
    session = _configured_session(client)
    assert "email" not in session.build_payload()
    session.set_email("buyer@example.com")
    assert session.build_payload()["email"] == "buyer@example.com"


def test_build_payload_with_discount(client):
    session = (
        client.checkout(order_id=2001)
        .add_item(LineItem.create("Game key", 10, 2))
        .add_percent_discount(LineItem.create("Summer sale", 0), 10)
    )
    payload = session.build_payload()
    assert session.total == Decimal("18")
    assert payload["amount"] == "18"
    # sha256("200118EURs3cr3t")
    assert payload["hash"] == "c1580c22ae64f7f4b40f0d41b4ab239446fa92b6e9ba0a76977a18957b3b1760"
    assert payload["items"][1]["amount"] == "-2"


def test_get_redirect_url_test_environment(client, transport):
    session = _configured_session(client)
    url = session.get_redirect_url()

    assert url == f"{CHECKOUT_TEST_URL}/index/gateway?token=abc123"
    assert session.redirect_url == url
    call = transport.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == f"{CHECKOUT_TEST_URL}/index/createQuote"
    assert call["fields"] == session.build_payload()


def test_get_redirect_url_production(production_credentials, make_transport):
    transport = make_transport({"token": "xyz"})
    client = G2APayClient(production_credentials, transport=transport)
    url = _configured_session(client).get_redirect_url()
    assert url == f"{CHECKOUT_PRODUCTION_URL}/index/gateway?token=xyz"
    assert transport.calls[0]["url"] == f"{CHECKOUT_PRODUCTION_URL}/index/createQuote"


def test_get_redirect_url_is_memoized(client, transport):
    session = _configured_session(client)
    first = session.get_redirect_url()
    second = session.get_redirect_url()
    assert first == second
    assert len(transport.calls) == 1


@pytest.mark.parametrize(
    "response",
    [
        {"token": None},
        {"token": ""},
        {"status": "error", "message": "Invalid hash"},
        "<html>Bad gateway</html>",
        None,
    ],
)
def test_get_redirect_url_without_token(credentials, response, make_transport):
    client = G2APayClient(credentials, transport=make_transport(response))
    session = _configured_session(client)
    with pytest.raises(GatewayResponseError) as exc:
        session.get_redirect_url()
    assert exc.value.response == response
    assert session.redirect_url is None
    assert session.state is SessionState.CONFIGURED


def test_failed_quote_can_be_retried(credentials, make_transport):
    transport = make_transport({"token": None}, {"token": "second"})
    session = _configured_session(G2APayClient(credentials, transport=transport))
    with pytest.raises(GatewayResponseError):
        session.get_redirect_url()
    assert session.get_redirect_url().endswith("token=second")
    assert len(transport.calls) == 2


def test_transport_error_propagates(credentials, make_transport):
    error = TransportError("connection refused", url=CHECKOUT_TEST_URL)
    session = _configured_session(G2APayClient(credentials, transport=make_transport(error)))
    with pytest.raises(TransportError) as exc:
        session.get_redirect_url()
    assert exc.value is error


def test_get_transaction_details(client, transport):
    transport.responses = [{"transactionId": "tx-1", "status": "complete"}]
    details = client.get_transaction_details("tx-1")

    assert details == {"transactionId": "tx-1", "status": "complete"}
    call = transport.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == f"{REST_TEST_URL}/transactions/tx-1"
    assert call["headers"] == {
        "Authorization": "apiHASH; 653032da53932e164271d421e0a8f48aeb96ea7964ab8b3d00eb760ecedda2a4"
    }


def test_authorized_post_request(production_credentials, make_transport):
    transport = make_transport({"ok": True})
    client = G2APayClient(production_credentials, transport=transport)
    client.authorized_request("/refunds", fields={"amount": "5"}, headers={"X-Trace": "1"})

    call = transport.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == f"{REST_PRODUCTION_URL}/refunds"
    assert call["fields"] == {"amount": "5"}
    assert call["headers"]["X-Trace"] == "1"
    assert call["headers"]["Authorization"].startswith("apiHASH; ")


def test_verify_ipn_accepts_valid_notification(client):
    fields = {
        "transactionId": "tx-123",
        "userOrderId": "1001",
        "amount": "10.567",
        "hash": "1328049a21199f8a285c10731f12848fd3e1f6ede358f127febc2ba9402b07b2",
    }
    notification = client.verify_ipn(fields)
    assert notification.transaction_id == "tx-123"
    assert client.is_valid_ipn(fields)


@pytest.mark.parametrize(
    "field, value",
    [("transactionId", "tx-124"), ("userOrderId", "1002"), ("amount", "10.58")],
)
def test_verify_ipn_rejects_tampered_notification(client, field, value):
    fields = {
        "transactionId": "tx-123",
        "userOrderId": "1001",
        "amount": "10.57",
        "hash": ipn_hash("tx-123", "1001", "10.57", "s3cr3t"),
    }
    fields[field] = value
    with pytest.raises(SignatureMismatch) as exc:
        client.verify_ipn(fields)
    assert exc.value.supplied == fields["hash"]
    assert not client.is_valid_ipn(fields)


def test_calculate_ipn_hash(client):
    assert client.calculate_ipn_hash("tx-123", 1001, 10) == ipn_hash("tx-123", 1001, 10, "s3cr3t")


def test_client_closes_only_own_transport(credentials, make_transport):
    transport = make_transport()
    closed = []
    transport.close = lambda: closed.append(True)
    with G2APayClient(credentials, transport=transport):
        pass
    assert closed == []


def test_verify_ipn_accepts_order_id_key(client):
    fields = {
        "transactionId": "tx-123",
        "orderId": "1001",
        "amount": "10",
        "hash": ipn_hash("tx-123", "1001", "10", "s3cr3t"),
    }
    notification = client.verify_ipn(fields)
    assert notification.order_id == "1001"
