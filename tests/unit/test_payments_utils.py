import pytest

from clubsphere.payments import (
    InvalidRequest,
    PurchaseIntent,
    PurchaseKind,
    parse_fee_minor_units,
    parse_subject_id,
    make_metadata,
    to_line_items,
    confirmed_payment_from_session,
)
from clubsphere.payments.checkout import build_session_request, checkout_urls
from tests.fakes import CLUB_ID, EVENT_ID, paid_session


@pytest.mark.parametrize("fee,expected", [
    (10, 1000),
    (0, 0),
    ("12.5", 1250),
    (" 7.30 ", 730),
    (9.99, 999),
    ("999999", 99_999_900),
])
def test_parse_fee_minor_units_ok(fee, expected):
    assert parse_fee_minor_units(fee) == expected


@pytest.mark.parametrize("fee", [-1, "-0.5", "abc", "", None, True, float("nan"), "inf", [10], "1e308", 1_000_000])
def test_parse_fee_minor_units_rejects(fee):
    with pytest.raises(InvalidRequest) as exc:
        parse_fee_minor_units(fee)
    assert exc.value.status_code == 400


def test_parse_subject_id_normalizes_and_rejects():
    assert parse_subject_id(CLUB_ID.upper()) == CLUB_ID
    with pytest.raises(InvalidRequest):
        parse_subject_id("64f1c2e9a1b2c3d4e5f60718")  # ObjectId Mongo, pas un UUID
    with pytest.raises(InvalidRequest):
        parse_subject_id(None)


def test_club_join_intent_line_item_and_metadata():
    intent = PurchaseIntent.club_join(club_id=CLUB_ID, club_name="Chess Club", fee=10, buyer_email="Buyer@Example.com")
    assert intent.kind is PurchaseKind.CLUB_JOIN
    assert intent.buyer_email == "buyer@example.com"

    items = to_line_items(intent, currency="usd")
    assert items == [{
        "quantity": 1,
        "price_data": {"currency": "usd", "unit_amount": 1000, "product_data": {"name": "Chess Club"}},
    }]
    assert make_metadata(intent) == {"kind": "club_join", "subject_id": CLUB_ID, "subject_name": "Chess Club"}


def test_free_club_intent_has_zero_unit_amount():
    intent = PurchaseIntent.club_join(club_id=CLUB_ID, club_name="Hiking", fee="0", buyer_email="a@b.c")
    assert to_line_items(intent)[0]["price_data"]["unit_amount"] == 0


def test_event_intent_metadata_carries_club_context():
    intent = PurchaseIntent.event_registration(
        event_id=EVENT_ID, title="Spring Open", fee=5, buyer_email="a@b.c", club_id=CLUB_ID, club_name="Chess Club",
    )
    meta = make_metadata(intent)
    assert meta == {
        "kind": "event_registration",
        "subject_id": EVENT_ID,
        "subject_name": "Spring Open",
        "club_id": CLUB_ID,
        "club_name": "Chess Club",
    }
    assert all(isinstance(v, str) for v in meta.values())


def test_metadata_values_are_truncated():
    intent = PurchaseIntent.club_join(club_id=CLUB_ID, club_name="x" * 900, fee=1, buyer_email="a@b.c")
    assert len(make_metadata(intent)["subject_name"]) == 500


def test_intent_requires_buyer_email():
    with pytest.raises(InvalidRequest):
        PurchaseIntent.club_join(club_id=CLUB_ID, club_name="Chess", fee=1, buyer_email="")


def test_session_request_shape():
    intent = PurchaseIntent.club_join(club_id=CLUB_ID, club_name="Chess Club", fee=10, buyer_email="a@b.c")
    req = build_session_request(intent, client_url="https://club.test/")
    assert req["mode"] == "payment"
    assert req["customer_email"] == "a@b.c"
    assert req["success_url"] == "https://club.test/payment-success?session_id={CHECKOUT_SESSION_ID}"
    assert req["cancel_url"] == "https://club.test/payment-cancelled"
    assert checkout_urls("https://club.test")["cancel_url"] == req["cancel_url"]


def test_confirmed_payment_from_club_session():
    payment = confirmed_payment_from_session(paid_session("cs_1", payment_intent="pi_9", amount_total=1250, email="Buyer@Example.com"))
    assert payment.kind is PurchaseKind.CLUB_JOIN
    assert payment.payment_id == "pi_9"
    assert payment.subject_id == CLUB_ID
    assert payment.buyer_email == "buyer@example.com"
    assert payment.amount == 12.5
    assert payment.club_id is None


def test_confirmed_payment_from_event_session():
    session = paid_session("cs_2", kind="event_registration", subject_id=EVENT_ID, subject_name="Spring Open")
    payment = confirmed_payment_from_session(session)
    assert payment.kind is PurchaseKind.EVENT_REGISTRATION
    assert payment.club_id == CLUB_ID
    assert payment.club_name == "Chess Club"


def test_confirmed_payment_falls_back_on_customer_details():
    session = paid_session(email=None)
    session["customer_email"] = None
    session["customer_details"] = {"email": "details@example.com"}
    assert confirmed_payment_from_session(session).buyer_email == "details@example.com"


def test_confirmed_payment_accepts_expanded_payment_intent():
    session = paid_session(payment_intent=None)
    session["payment_intent"] = {"id": "pi_expanded", "object": "payment_intent"}
    assert confirmed_payment_from_session(session).payment_id == "pi_expanded"


@pytest.mark.parametrize("mutate", [
    lambda s: s["metadata"].update(kind="gift_card"),
    lambda s: s["metadata"].pop("subject_id"),
    lambda s: s.update(payment_intent=None),
    lambda s: s.update(customer_email=None),
])
def test_confirmed_payment_rejects_malformed_sessions(mutate):
    session = paid_session()
    mutate(session)
    with pytest.raises(InvalidRequest):
        confirmed_payment_from_session(session)
