"""
Module 'payments' (feature-first): point d'entrée public.
Réunit types d'intention, metadata Stripe, client Stripe, checkout, inscription et réconciliation.
"""

from .errors import InvalidRequest, GatewayError
from .intents import PurchaseKind, PurchaseIntent, ConfirmedPayment, parse_fee_minor_units, parse_subject_id
from .metadata import make_metadata, extract_metadata_from_session, confirmed_payment_from_session
from .stripe_client import require_stripe, create_session, get_session, parse_event
from .checkout import to_line_items, build_session_request, create_checkout_session
from .enrollment import EnrollmentResult, try_enroll
from .service import ReconciliationStatus, ReconciliationResult, reconcile, record_payment

__all__ = [
    # errors
    "InvalidRequest",
    "GatewayError",
    # intents
    "PurchaseKind",
    "PurchaseIntent",
    "ConfirmedPayment",
    "parse_fee_minor_units",
    "parse_subject_id",
    # metadata
    "make_metadata",
    "extract_metadata_from_session",
    "confirmed_payment_from_session",
    # stripe
    "require_stripe",
    "create_session",
    "get_session",
    "parse_event",
    # checkout
    "to_line_items",
    "build_session_request",
    "create_checkout_session",
    # enrollment
    "EnrollmentResult",
    "try_enroll",
    # services
    "ReconciliationStatus",
    "ReconciliationResult",
    "reconcile",
    "record_payment",
]
