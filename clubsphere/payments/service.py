"""
Cas d'usage 'payments': réconciliation d'une session Stripe payée.

Aucun état "en cours" n'est stocké: chaque appel re-dérive tout depuis Stripe puis
applique des écritures idempotentes (ajout conditionnel + insert-if-absent).
Un appel répété, concurrent, ou repris après un crash partiel converge vers le
même état: un email dans l'ensemble, un enregistrement par payment_id et par collection.
"""
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional
import logging

from clubsphere.ledger.records import (
    MEMBERSHIPS,
    REGISTRATIONS,
    PAYMENTS,
    MembershipRecord,
    RegistrationRecord,
    PaymentRecord,
)
from clubsphere.ledger.store import LedgerStore, StoreConflict
from . import stripe_client
from .enrollment import try_enroll
from .errors import InvalidRequest
from .intents import ConfirmedPayment, PurchaseKind
from .metadata import confirmed_payment_from_session

logger = logging.getLogger(__name__)


class ReconciliationStatus(str, Enum):
    RECORDED = "recorded"
    NOT_PAID = "not_paid"


@dataclass(frozen=True)
class ReconciliationResult:
    status: ReconciliationStatus
    session_id: str
    payment_status: str
    kind: Optional[str] = None
    subject_id: Optional[str] = None
    payment_id: Optional[str] = None
    enrolled: bool = False
    record_created: bool = False
    payment_created: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


def _insert_once(store: LedgerStore, collection: str, row: Dict[str, Any]) -> bool:
    """Insert-if-absent: True si créé, False si déjà présent (StoreConflict absorbé)."""
    try:
        store.insert_if_absent(collection, row)
        return True
    except StoreConflict as e:
        logger.info("payments.reconcile already recorded collection=%s payment_id=%s", e.collection, e.value)
        return False


def _subject_record(payment: ConfirmedPayment):
    if payment.kind is PurchaseKind.CLUB_JOIN:
        return MEMBERSHIPS, MembershipRecord(
            club_id=payment.subject_id,
            user_email=payment.buyer_email,
            payment_id=payment.payment_id,
        )
    return REGISTRATIONS, RegistrationRecord(
        event_id=payment.subject_id,
        club_id=payment.club_id,
        user_email=payment.buyer_email,
        payment_id=payment.payment_id,
    )


def _payment_record(payment: ConfirmedPayment) -> PaymentRecord:
    club_id = payment.subject_id if payment.kind is PurchaseKind.CLUB_JOIN else payment.club_id
    return PaymentRecord(
        payment_id=payment.payment_id,
        session_id=payment.session_id,
        user_email=payment.buyer_email,
        subject_id=payment.subject_id,
        club_id=club_id,
        amount=payment.amount,
        currency=payment.currency,
        kind=payment.kind.value,
    )


def record_payment(store: LedgerStore, payment: ConfirmedPayment) -> Dict[str, bool]:
    """Insère l'adhésion/inscription puis le paiement, chacun au plus une fois par payment_id."""
    collection, record = _subject_record(payment)
    record_created = _insert_once(store, collection, record.to_row())
    payment_created = _insert_once(store, PAYMENTS, _payment_record(payment).to_row())
    return {"record_created": record_created, "payment_created": payment_created}


def reconcile(session_id: str, *, store: LedgerStore, gateway=stripe_client) -> ReconciliationResult:
    """
    Réconcilie une session Stripe:
      1) relit la session côté Stripe (seule source des faits financiers)
      2) payment_status != "paid" -> NOT_PAID, aucune écriture
      3) décode la metadata en ConfirmedPayment (InvalidRequest si mal formée)
      4) ajout conditionnel de l'email à members/attendees (informatif)
      5) insert-if-absent adhésion/inscription + paiement, toujours exécuté
    Erreurs: GatewayError (Stripe), InvalidRequest (metadata); aucune écriture dans ces cas.
    """
    session_id = (session_id or "").strip()
    if not session_id:
        raise InvalidRequest("session_id manquant")
    session = gateway.get_session(session_id)
    payment_status = str(session.get("payment_status") or "")
    if payment_status != "paid":
        logger.info("payments.reconcile not paid session=%s payment_status=%s", session_id, payment_status)
        return ReconciliationResult(
            status=ReconciliationStatus.NOT_PAID,
            session_id=session_id,
            payment_status=payment_status,
        )

    payment = confirmed_payment_from_session(session)
    enrollment = try_enroll(store, payment.kind, payment.subject_id, payment.buyer_email)
    created = record_payment(store, payment)

    logger.info(
        "payments.reconcile status=recorded session=%s kind=%s subject_id=%s payment_id=%s enrolled=%s created=%s",
        session_id, payment.kind.value, payment.subject_id, payment.payment_id, enrollment.added, created,
    )
    return ReconciliationResult(
        status=ReconciliationStatus.RECORDED,
        session_id=session_id,
        payment_status=payment_status,
        kind=payment.kind.value,
        subject_id=payment.subject_id,
        payment_id=payment.payment_id,
        enrolled=enrollment.added,
        **created,
    )


def list_user_payments(store: LedgerStore, email: str, limit: int = 50):
    return store.find(PAYMENTS, {"user_email": (email or "").strip().lower()}, limit=limit, order_by="created_at", desc=True)


def list_recent_payments(store: LedgerStore, limit: int = 100):
    return store.find(PAYMENTS, limit=limit, order_by="created_at", desc=True)
