import pytest
import stripe

from checkout.stripe_service import GatewayError, StripeGateway, to_minor_units


@pytest.fixture
def gateway():
    return StripeGateway(api_key="sk_test_mock_key", publishable_key="pk_test_mock_key")


@pytest.mark.parametrize(
    "amount, expected",
    [(50.00, 5000), (10, 1000), ("12.34", 1234), (10.005, 1001), (0.1 + 0.2, 30)],
)
def test_to_minor_units(amount, expected):
    assert to_minor_units(amount) == expected


def test_create_payment_intent_converts_to_cents(gateway, mocker):
    create = mocker.patch("stripe.PaymentIntent.create", return_value=mocker.Mock(id="pi_test_123"))

    intent = gateway.create_payment_intent(50.00)

    assert intent.id == "pi_test_123"
    create.assert_called_once_with(
        api_key="sk_test_mock_key",
        amount=5000,
        currency="usd",
        automatic_payment_methods={"enabled": True},
    )


def test_create_payment_intent_custom_currency(gateway, mocker):
    create = mocker.patch("stripe.PaymentIntent.create")

    gateway.create_payment_intent(25, currency="eur")

    assert create.call_args.kwargs["currency"] == "eur"
    assert create.call_args.kwargs["amount"] == 2500


def test_create_payment_intent_wraps_errors(gateway, mocker):
    mocker.patch(
        "stripe.PaymentIntent.create",
        side_effect=stripe.InvalidRequestError("Amount must be at least 50 cents", "amount"),
    )

    with pytest.raises(GatewayError, match="Payment intent creation failed: Amount must be at least 50 cents") as exc:
        gateway.create_payment_intent(0.1)

    assert isinstance(exc.value.__cause__, stripe.InvalidRequestError)


def test_retrieve_payment_intent(gateway, mocker):
    retrieve = mocker.patch("stripe.PaymentIntent.retrieve")

    gateway.retrieve_payment_intent("pi_123")
    gateway.retrieve_payment_intent("pi_456", expand=["latest_charge"])

    retrieve.assert_any_call("pi_123", api_key="sk_test_mock_key")
    retrieve.assert_any_call("pi_456", api_key="sk_test_mock_key", expand=["latest_charge"])


def test_retrieve_payment_intent_wraps_errors(gateway, mocker):
    mocker.patch("stripe.PaymentIntent.retrieve", side_effect=Exception("Network error"))

    with pytest.raises(GatewayError, match="Payment intent retrieval failed: Network error"):
        gateway.retrieve_payment_intent("pi_123")


def test_confirm_payment_intent(gateway, mocker):
    confirm = mocker.patch("stripe.PaymentIntent.confirm")

    gateway.confirm_payment_intent("pi_123", "pm_card_visa")

    confirm.assert_called_once_with("pi_123", api_key="sk_test_mock_key", payment_method="pm_card_visa")


def test_confirm_payment_intent_wraps_errors(gateway, mocker):
    mocker.patch("stripe.PaymentIntent.confirm", side_effect=Exception("Card declined"))

    with pytest.raises(GatewayError, match="Payment confirmation failed: Card declined"):
        gateway.confirm_payment_intent("pi_123", "pm_card_visa")


def test_create_checkout_session(gateway, mocker):
    create = mocker.patch("stripe.checkout.Session.create")

    gateway.create_checkout_session(19.99, "https://example.com/ok", "https://example.com/cancel")

    kwargs = create.call_args.kwargs
    assert kwargs["mode"] == "payment"
    assert kwargs["payment_method_types"] == ["card"]
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 1999
    assert kwargs["line_items"][0]["price_data"]["product_data"] == {"name": "Payment"}
    assert kwargs["success_url"] == "https://example.com/ok"
    assert kwargs["cancel_url"] == "https://example.com/cancel"


def test_retrieve_session_wraps_errors(gateway, mocker):
    mocker.patch("stripe.checkout.Session.retrieve", side_effect=Exception("No such session"))

    with pytest.raises(GatewayError, match="Session retrieval failed: No such session"):
        gateway.retrieve_session("cs_123")


def test_construct_webhook_event(gateway, mocker):
    construct = mocker.patch("stripe.Webhook.construct_event", return_value={"type": "customer.created"})

    event = gateway.construct_webhook_event(b"{}", "t=1,v1=abc", "whsec_test")

    assert event == {"type": "customer.created"}
    construct.assert_called_once_with(b"{}", "t=1,v1=abc", "whsec_test")


def test_construct_webhook_event_wraps_errors(gateway, mocker):
    mocker.patch(
        "stripe.Webhook.construct_event",
        side_effect=stripe.SignatureVerificationError("Invalid", "sig"),
    )

    with pytest.raises(GatewayError, match="Webhook signature verification failed: Invalid"):
        gateway.construct_webhook_event(b"{}", "sig", "whsec_test")


def test_get_publishable_key(gateway):
    assert gateway.get_publishable_key() == "pk_test_mock_key"


def test_create_customer(gateway, mocker):
    create = mocker.patch("stripe.Customer.create")

    gateway.create_customer("jenny@example.com")
    gateway.create_customer("jenny@example.com", name="Jenny Rosen", metadata={"plan": "pro"})

    first, second = create.call_args_list
    assert first.kwargs == {"api_key": "sk_test_mock_key", "email": "jenny@example.com", "metadata": {}}
    assert second.kwargs["name"] == "Jenny Rosen"
    assert second.kwargs["metadata"] == {"plan": "pro"}


def test_retrieve_and_update_customer(gateway, mocker):
    retrieve = mocker.patch("stripe.Customer.retrieve")
    modify = mocker.patch("stripe.Customer.modify")

    gateway.retrieve_customer("cus_123")
    gateway.update_customer("cus_123", email="new@example.com")

    retrieve.assert_called_once_with("cus_123", api_key="sk_test_mock_key")
    modify.assert_called_once_with("cus_123", api_key="sk_test_mock_key", email="new@example.com")


def test_customer_errors_are_wrapped(gateway, mocker):
    mocker.patch("stripe.Customer.create", side_effect=Exception("Invalid email"))
    mocker.patch("stripe.Customer.modify", side_effect=Exception("No such customer"))

    with pytest.raises(GatewayError, match="Customer creation failed: Invalid email"):
        gateway.create_customer("bad")
    with pytest.raises(GatewayError, match="Customer update failed: No such customer"):
        gateway.update_customer("cus_missing", name="x")


def test_payment_method_management(gateway, mocker):
    attach = mocker.patch("stripe.PaymentMethod.attach")
    listing = mocker.patch("stripe.PaymentMethod.list", return_value=mocker.Mock(data=["pm_1", "pm_2"]))
    detach = mocker.patch("stripe.PaymentMethod.detach")
    modify = mocker.patch("stripe.Customer.modify")

    gateway.attach_payment_method("pm_1", "cus_123")
    methods = gateway.list_payment_methods("cus_123")
    gateway.detach_payment_method("pm_2")
    gateway.set_default_payment_method("cus_123", "pm_1")

    attach.assert_called_once_with("pm_1", api_key="sk_test_mock_key", customer="cus_123")
    listing.assert_called_once_with(api_key="sk_test_mock_key", customer="cus_123", type="card")
    assert methods == ["pm_1", "pm_2"]
    detach.assert_called_once_with("pm_2", api_key="sk_test_mock_key")
    modify.assert_called_once_with(
        "cus_123",
        api_key="sk_test_mock_key",
        invoice_settings={"default_payment_method": "pm_1"},
    )


def test_payment_method_errors_are_wrapped(gateway, mocker):
    mocker.patch("stripe.PaymentMethod.attach", side_effect=Exception("already attached"))
    mocker.patch("stripe.Customer.modify", side_effect=Exception("No such payment method"))

    with pytest.raises(GatewayError, match="Payment method attachment failed: already attached"):
        gateway.attach_payment_method("pm_1", "cus_123")
    with pytest.raises(GatewayError, match="Setting default payment method failed"):
        gateway.set_default_payment_method("cus_123", "pm_1")


def test_create_payment_intent_with_customer(gateway, mocker):
    create = mocker.patch("stripe.PaymentIntent.create")

    gateway.create_payment_intent_with_customer(30, "cus_123")
    gateway.create_payment_intent_with_customer(30, "cus_123", payment_method_id="pm_1")

    without_pm, with_pm = create.call_args_list
    assert without_pm.kwargs == {
        "api_key": "sk_test_mock_key",
        "amount": 3000,
        "currency": "usd",
        "customer": "cus_123",
        "payment_method_types": ["card", "paypal"],
        "automatic_payment_methods": {"enabled": False},
    }
    assert with_pm.kwargs["payment_method"] == "pm_1"
    assert with_pm.kwargs["confirm"] is True


def test_create_refund(gateway, mocker):
    create = mocker.patch("stripe.Refund.create")

    gateway.create_refund("pi_123")
    gateway.create_refund("pi_123", amount=5.5, reason="duplicate")

    full, partial = create.call_args_list
    assert full.kwargs == {
        "api_key": "sk_test_mock_key",
        "payment_intent": "pi_123",
        "reason": "requested_by_customer",
    }
    assert partial.kwargs["amount"] == 550
    assert partial.kwargs["reason"] == "duplicate"


def test_refund_lookup_and_update(gateway, mocker):
    retrieve = mocker.patch("stripe.Refund.retrieve")
    listing = mocker.patch("stripe.Refund.list", return_value=mocker.Mock(data=["re_1"]))
    modify = mocker.patch("stripe.Refund.modify")

    gateway.retrieve_refund("re_1")
    assert gateway.list_refunds() == ["re_1"]
    gateway.list_refunds("pi_123", limit=3)
    gateway.update_refund("re_1", {"note": "customer call"})

    retrieve.assert_called_once_with("re_1", api_key="sk_test_mock_key")
    listing.assert_any_call(api_key="sk_test_mock_key", limit=10)
    listing.assert_any_call(api_key="sk_test_mock_key", limit=3, payment_intent="pi_123")
    modify.assert_called_once_with("re_1", api_key="sk_test_mock_key", metadata={"note": "customer call"})


def test_refund_errors_are_wrapped(gateway, mocker):
    mocker.patch("stripe.Refund.create", side_effect=Exception("Charge already refunded"))

    with pytest.raises(GatewayError, match="Refund creation failed: Charge already refunded"):
        gateway.create_refund("pi_123")


def test_bad_amounts_are_wrapped(gateway, mocker):
    create_intent = mocker.patch("stripe.PaymentIntent.create")
    create_refund = mocker.patch("stripe.Refund.create")

    with pytest.raises(GatewayError, match="Payment intent creation failed"):
        gateway.create_payment_intent("abc")
    with pytest.raises(GatewayError, match="Payment intent with customer creation failed"):
        gateway.create_payment_intent_with_customer("abc", "cus_123")
    with pytest.raises(GatewayError, match="Refund creation failed"):
        gateway.create_refund("pi_123", amount="ten")

    create_intent.assert_not_called()
    create_refund.assert_not_called()
