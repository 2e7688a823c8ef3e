"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Ce module joue le rôle de "gateway" injecté dans le checkout et le réconciliateur
(toute erreur SDK est convertie en GatewayError, sans retry).
"""
import stripe
from typing import Any, Dict, List
from fastapi import Request

from clubsphere.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from .errors import GatewayError, InvalidRequest

# module clubsphere.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe

def _as_dict(obj: Any) -> Dict[str, Any]:
    # StripeObject: to_dict() récursif selon la version du SDK
    to_dict = getattr(obj, "to_dict", None) or getattr(obj, "to_dict_recursive", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    mode: str,
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    customer_email: str,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - line_items: lignes Stripe (price_data + quantity)
    - mode: "payment"
    - success_url: contient {CHECKOUT_SESSION_ID}, remplacé par Stripe
    - metadata: contexte complet de réconciliation (voir payments.metadata)
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.create(
            line_items=line_items,
            mode=mode,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            customer_email=customer_email,
            payment_method_types=["card"],
        )
    except stripe.StripeError as e:
        raise GatewayError(f"Création de session Stripe impossible: {e.user_message or e}")
    return _as_dict(session)

def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    Retour: dict session incluant "payment_status", "payment_intent", "amount_total",
    "customer_email", "metadata".
    """
    if not session_id:
        raise InvalidRequest("session_id manquant")
    require_stripe()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as e:
        raise GatewayError(f"Session introuvable: {e.user_message or e}")
    return _as_dict(session)

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    - InvalidRequest si la signature ou le payload sont invalides
    """
    require_stripe()
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    try:
        event = stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError):
        raise InvalidRequest("Invalid Stripe webhook payload")
    return _as_dict(event)
