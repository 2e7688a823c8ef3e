"""
Checkout Session Factory: PurchaseIntent -> URL de redirection Stripe.
Aucune écriture en base: la session ne fait que mettre en forme une demande.
"""
import logging
from typing import Any, Dict, List

from clubsphere.config import CHECKOUT_CURRENCY, CLIENT_URL, CHECKOUT_SUCCESS_PATH, CHECKOUT_CANCEL_PATH
from . import stripe_client
from .errors import GatewayError
from .intents import PurchaseIntent
from .metadata import make_metadata

logger = logging.getLogger(__name__)

# Devises Stripe dont l'unité mineure n'est pas le centième (facteur x100 faux)
UNSUPPORTED_CURRENCIES = frozenset({
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga", "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
    "bhd", "jod", "kwd", "omr", "tnd",
})

# module clubsphere.payments.checkout
def ensure_supported_currency(currency: str = CHECKOUT_CURRENCY) -> str:
    """RuntimeError au démarrage si la devise configurée n'a pas deux décimales."""
    code = (currency or "").strip().lower()
    if not code or code in UNSUPPORTED_CURRENCIES:
        raise RuntimeError(f"CHECKOUT_CURRENCY non supportée: {currency!r} (devise à deux décimales requise)")
    return code

def to_line_items(intent: PurchaseIntent, currency: str = CHECKOUT_CURRENCY) -> List[Dict[str, Any]]:
    """Une seule ligne: prix en unités mineures, nom du club ou titre de l'événement."""
    return [{
        "quantity": 1,
        "price_data": {
            "currency": currency,
            "unit_amount": intent.fee_minor_units,
            "product_data": {"name": intent.subject_name or "Adhésion"},
        },
    }]

def checkout_urls(client_url: str = CLIENT_URL) -> Dict[str, str]:
    """
    URLs de retour côté front.
    - success_url: placeholder {CHECKOUT_SESSION_ID} substitué par Stripe
    - cancel_url: page d'annulation
    """
    base = (client_url or "").rstrip("/")
    sep = "&" if "?" in CHECKOUT_SUCCESS_PATH else "?"
    return {
        "success_url": f"{base}{CHECKOUT_SUCCESS_PATH}{sep}session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{base}{CHECKOUT_CANCEL_PATH}",
    }

def build_session_request(intent: PurchaseIntent, client_url: str = CLIENT_URL) -> Dict[str, Any]:
    return {
        "line_items": to_line_items(intent),
        "mode": "payment",
        "metadata": make_metadata(intent),
        "customer_email": intent.buyer_email,
        **checkout_urls(client_url),
    }

def create_checkout_session(intent: PurchaseIntent, *, gateway=stripe_client, client_url: str = CLIENT_URL) -> Dict[str, Any]:
    """
    Crée la session Stripe et retourne {"id", "url"}.
    - GatewayError si Stripe échoue ou ne renvoie pas d'URL (un seul essai).
    """
    session = gateway.create_session(**build_session_request(intent, client_url))
    url = (session or {}).get("url")
    if not url:
        raise GatewayError("Session Stripe invalide")
    logger.info(
        "payments.checkout created session=%s kind=%s subject_id=%s amount=%s",
        session.get("id"), intent.kind.value, intent.subject_id, intent.fee_minor_units,
    )
    return {"id": session.get("id"), "url": url}
