import pytest
from unittest.mock import MagicMock

from clubsphere.payments import GatewayError, PurchaseIntent, create_checkout_session
from clubsphere.payments.checkout import ensure_supported_currency
from tests.fakes import CLUB_ID, EVENT_ID, FakeGateway


def _club_intent(fee=10):
    return PurchaseIntent.club_join(club_id=CLUB_ID, club_name="Chess Club", fee=fee, buyer_email="buyer@example.com")


def test_create_checkout_session_returns_redirect_url():
    gateway = FakeGateway()
    result = create_checkout_session(_club_intent(), gateway=gateway, client_url="https://club.test")

    assert result == {"id": "cs_test_1", "url": "https://checkout.stripe.test/pay/cs_test_1"}
    sent = gateway.created[0]
    assert sent["line_items"][0]["price_data"]["unit_amount"] == 1000
    assert sent["metadata"]["kind"] == "club_join"
    assert sent["customer_email"] == "buyer@example.com"
    assert "{CHECKOUT_SESSION_ID}" in sent["success_url"]


def test_create_checkout_session_for_event():
    gateway = FakeGateway()
    intent = PurchaseIntent.event_registration(
        event_id=EVENT_ID, title="Spring Open", fee="5", buyer_email="buyer@example.com",
        club_id=CLUB_ID, club_name="Chess Club",
    )
    create_checkout_session(intent, gateway=gateway)
    sent = gateway.created[0]
    assert sent["line_items"][0]["price_data"]["unit_amount"] == 500
    assert sent["line_items"][0]["price_data"]["product_data"]["name"] == "Spring Open"
    assert sent["metadata"]["club_id"] == CLUB_ID


def test_gateway_failure_bubbles_without_retry():
    gateway = MagicMock()
    gateway.create_session.side_effect = GatewayError("Création de session Stripe impossible")
    with pytest.raises(GatewayError) as exc:
        create_checkout_session(_club_intent(), gateway=gateway)
    assert exc.value.status_code == 502
    assert gateway.create_session.call_count == 1


def test_session_without_url_is_a_gateway_error():
    gateway = MagicMock()
    gateway.create_session.return_value = {"id": "cs_x"}
    with pytest.raises(GatewayError):
        create_checkout_session(_club_intent(), gateway=gateway)


@pytest.mark.parametrize("currency", ["jpy", "KRW", "kwd", ""])
def test_currency_without_two_decimals_is_refused_at_startup(currency):
    with pytest.raises(RuntimeError):
        ensure_supported_currency(currency)


def test_two_decimal_currency_is_accepted():
    assert ensure_supported_currency(" EUR ") == "eur"
