import os

# Settings are read when the app module is imported
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_mock_key")
os.environ.setdefault("STRIPE_PUBLISHABLE_KEY", "pk_test_mock_key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_mock_secret")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import stripe
from fastapi.testclient import TestClient

from checkout.dependencies import get_gateway
from checkout.main import app as fastapi_app
from checkout.stripe_service import StripeGateway


def make_payment_intent(**fields):
    """Build a PaymentIntent the way the SDK returns it from the API."""
    return stripe.PaymentIntent.construct_from(fields, "sk_test_mock_key")


@pytest.fixture
def gateway(mocker):
    fake = mocker.Mock(spec=StripeGateway)
    fake.get_publishable_key.return_value = "pk_test_mock_key"
    return fake


@pytest.fixture
def client(gateway):
    fastapi_app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def stripe_client():
    """Client backed by the real gateway; tests patch the stripe SDK underneath it."""
    with TestClient(fastapi_app) as c:
        yield c
