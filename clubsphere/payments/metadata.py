"""
Sérialisation/désérialisation des métadonnées Stripe (kind, subject_id, subject_name, club_id, club_name).

Le service ne garde aucun état entre la création de la session et sa confirmation:
la metadata de la session porte tout le contexte nécessaire à la réconciliation.
"""
from typing import Any, Dict

from .errors import InvalidRequest
from .intents import ConfirmedPayment, PurchaseIntent, PurchaseKind, parse_subject_id

# Limite Stripe par valeur de metadata
MAX_VALUE_LENGTH = 500

# module clubsphere.payments.metadata
def make_metadata(intent: PurchaseIntent) -> Dict[str, str]:
    """
    Construit le sac de metadata plat (str -> str) attaché à la session.
    - Toujours: kind, subject_id, subject_name
    - EventRegistration: club_id, club_name en plus
    """
    meta = {
        "kind": intent.kind.value,
        "subject_id": intent.subject_id,
        "subject_name": intent.subject_name[:MAX_VALUE_LENGTH],
    }
    if intent.kind is PurchaseKind.EVENT_REGISTRATION:
        meta["club_id"] = intent.club_id or ""
        meta["club_name"] = (intent.club_name or "")[:MAX_VALUE_LENGTH]
    return meta


def extract_metadata_from_session(session: Dict[str, Any]) -> Dict[str, str]:
    meta = (session or {}).get("metadata") or {}
    return {str(k): str(v) for k, v in dict(meta).items() if v is not None}


def session_buyer_email(session: Dict[str, Any]) -> str:
    """Email confirmé par Stripe: customer_email, sinon customer_details.email."""
    email = session.get("customer_email")
    if not email:
        email = (session.get("customer_details") or {}).get("email")
    return (email or "").strip().lower()


def confirmed_payment_from_session(session: Dict[str, Any]) -> ConfirmedPayment:
    """
    Construit ConfirmedPayment à partir de la session Stripe relue (jamais du corps de requête).
    - payment_id = payment_intent (stable et unique par paiement)
    - InvalidRequest si kind inconnu, identifiants absents/mal formés ou email manquant.
    """
    meta = extract_metadata_from_session(session)
    try:
        kind = PurchaseKind(meta.get("kind") or "")
    except ValueError:
        raise InvalidRequest("Metadata de session invalide: kind")

    payment_id = session.get("payment_intent")
    if isinstance(payment_id, dict):
        payment_id = payment_id.get("id")
    if not payment_id:
        raise InvalidRequest("Session sans payment_intent")

    buyer_email = session_buyer_email(session)
    if not buyer_email:
        raise InvalidRequest("Session sans email acheteur")

    club_id = None
    if kind is PurchaseKind.EVENT_REGISTRATION:
        club_id = parse_subject_id(meta.get("club_id"), "club_id")

    return ConfirmedPayment(
        session_id=str(session.get("id") or ""),
        payment_id=str(payment_id),
        kind=kind,
        subject_id=parse_subject_id(meta.get("subject_id"), "subject_id"),
        subject_name=meta.get("subject_name") or "",
        buyer_email=buyer_email,
        amount_minor_units=int(session.get("amount_total") or 0),
        currency=str(session.get("currency") or ""),
        club_id=club_id,
        club_name=meta.get("club_name") if kind is PurchaseKind.EVENT_REGISTRATION else None,
    )
