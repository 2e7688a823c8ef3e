import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from clubsphere.config import STRIPE_WEBHOOK_SECRET
from clubsphere.ledger.store import LedgerStore
from clubsphere.utils.dependencies import get_ledger_store, get_gateway
from clubsphere.utils.rate_limit import optional_rate_limit
from clubsphere.utils.security import require_user, require_admin
from clubsphere.payments import service as payments_service
from clubsphere.payments.errors import InvalidRequest
from clubsphere.payments.checkout import create_checkout_session
from clubsphere.payments.intents import PurchaseIntent

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# Evénements Stripe qui signalent une session payée
COMPLETED_EVENTS = {
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
}


class ClubCheckoutRequest(BaseModel):
    club_id: str
    club_name: str = ""
    fee: Any = None


class EventCheckoutRequest(BaseModel):
    event_id: str
    title: str = ""
    fee: Any = None
    club_id: str
    club_name: str = ""


# module clubsphere.payments.views
@router.post("/checkout/club", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_club_checkout(
    body: ClubCheckoutRequest,
    user: Dict[str, Any] = Depends(require_user),
    gateway=Depends(get_gateway),
):
    """
    Crée une session Checkout Stripe pour rejoindre un club.
    - Entrée JSON: {"club_id": "<uuid>", "club_name": "...", "fee": 10}
    - L'email acheteur est celui du principal authentifié.
    - Erreurs: 400 si frais/identifiant invalides, 502 si Stripe échoue.
    """
    intent = PurchaseIntent.club_join(
        club_id=body.club_id,
        club_name=body.club_name,
        fee=body.fee,
        buyer_email=user.get("email", ""),
    )
    return JSONResponse(create_checkout_session(intent, gateway=gateway))

@router.post("/checkout/event", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_event_checkout(
    body: EventCheckoutRequest,
    user: Dict[str, Any] = Depends(require_user),
    gateway=Depends(get_gateway),
):
    """
    Crée une session Checkout Stripe pour s'inscrire à un événement.
    - Entrée JSON: {"event_id", "title", "fee", "club_id", "club_name"}
    - club_id/club_name voyagent dans la metadata pour la réconciliation.
    """
    intent = PurchaseIntent.event_registration(
        event_id=body.event_id,
        title=body.title,
        fee=body.fee,
        buyer_email=user.get("email", ""),
        club_id=body.club_id,
        club_name=body.club_name,
    )
    return JSONResponse(create_checkout_session(intent, gateway=gateway))

@router.get("/success")
def payment_success(
    session_id: Optional[str] = None,
    store: LedgerStore = Depends(get_ledger_store),
    gateway=Depends(get_gateway),
):
    """
    Retour de redirection Stripe: réconcilie la session.
    - Seul session_id est lu; montant, payeur et statut viennent de Stripe.
    - 200 {"status": "recorded", ...} une fois payé (rejouable sans effet de bord)
    - 202 {"status": "not_paid", ...} tant que Stripe n'a pas finalisé
    - 400 session_id manquant / metadata invalide, 502 session inconnue côté Stripe
    """
    result = payments_service.reconcile(session_id or "", store=store, gateway=gateway)
    status_code = 200 if result.status is payments_service.ReconciliationStatus.RECORDED else 202
    return JSONResponse(result.to_dict(), status_code=status_code)

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request, store: LedgerStore = Depends(get_ledger_store), gateway=Depends(get_gateway)):
    """
    Webhook Stripe signé: canal authentifié pour déclencher la même réconciliation.
    - Signature: Stripe-Signature + STRIPE_WEBHOOK_SECRET (503 si le secret n'est pas configuré)
    - La session est relue via get_session: le payload de l'événement ne sert qu'à obtenir l'id.
    - Réponses: {"status": "<recorded|not_paid>"} ou {"status": "ignored"}
    - Metadata absente ou étrangère (autre produit): 200 "ignored", pas 400
    """
    if not STRIPE_WEBHOOK_SECRET:
        raise HTTPException(status_code=503, detail="Webhook Stripe non configuré")
    event = await gateway.parse_event(request)
    event_type = (event or {}).get("type")
    if event_type not in COMPLETED_EVENTS:
        return JSONResponse({"status": "ignored", "type": event_type})
    session_id = (((event.get("data") or {}).get("object")) or {}).get("id") or ""
    try:
        result = await run_in_threadpool(payments_service.reconcile, session_id, store=store, gateway=gateway)
    except InvalidRequest as e:
        # Session d'un autre produit du compte Stripe: acquittée pour stopper les relances
        logger.info("payments.webhook ignored session=%s detail=%s", session_id, e.detail)
        return JSONResponse({"status": "ignored", "type": event_type})
    logger.info("payments.webhook type=%s session=%s status=%s", event_type, session_id, result.status.value)
    return JSONResponse(result.to_dict())

@router.get("/me")
def my_payments(user: Dict[str, Any] = Depends(require_user), store: LedgerStore = Depends(get_ledger_store)):
    """Historique des paiements du principal authentifié."""
    return {"items": payments_service.list_user_payments(store, user.get("email", ""))}

@router.get("/")
def list_payments(limit: int = 100, _admin: Dict[str, Any] = Depends(require_admin), store: LedgerStore = Depends(get_ledger_store)):
    """Derniers paiements enregistrés (admin uniquement)."""
    return {"items": payments_service.list_recent_payments(store, limit=max(1, min(limit, 500)))}
