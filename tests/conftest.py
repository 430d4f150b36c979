import pytest

from g2apay_client import Credentials, G2APayClient


class RecordingTransport:
    """Fake transport returning canned responses and recording every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def send(self, method, url, fields=None, headers=None):
        self.calls.append({"method": method, "url": url, "fields": fields, "headers": headers})
        response = self.responses.pop(0) if self.responses else {}
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass


@pytest.fixture
def credentials():
    return Credentials(
        api_hash="apiHASH",
        secret_key="s3cr3t",
        merchant_email="merchant@example.com",
    )


@pytest.fixture
def production_credentials(credentials):
    return credentials.model_copy(update={"is_production": True})


@pytest.fixture
def make_transport():
    return RecordingTransport


@pytest.fixture
def transport():
    return RecordingTransport({"token": "abc123"})


@pytest.fixture
def client(credentials, transport):
    return G2APayClient(credentials, transport=transport)
