"""
Enrollment Applier: ajout idempotent d'un email à members (club) ou attendees (événement).
La duplication n'est pas détectée puis rejetée: elle est exclue par le filtre de l'UPDATE.
"""
from dataclasses import dataclass
import logging

from clubsphere.ledger.store import CLUBS, EVENTS, LedgerStore
from .intents import PurchaseKind, parse_subject_id

logger = logging.getLogger(__name__)

AGGREGATE_BY_KIND = {
    PurchaseKind.CLUB_JOIN: CLUBS,
    PurchaseKind.EVENT_REGISTRATION: EVENTS,
}


@dataclass(frozen=True)
class EnrollmentResult:
    added: bool


def try_enroll(store: LedgerStore, kind: PurchaseKind, subject_id: str, email: str) -> EnrollmentResult:
    """
    Ajoute email à l'ensemble du sujet s'il n'y figure pas.
    - added=False: déjà inscrit (ou sujet introuvable), ce n'est pas une erreur.
    - InvalidRequest si subject_id n'est pas un UUID.
    """
    subject_id = parse_subject_id(subject_id)
    collection = AGGREGATE_BY_KIND[kind]
    added = store.append_if_absent(collection, subject_id, email)
    if not added:
        logger.info("payments.enrollment noop collection=%s subject_id=%s", collection, subject_id)
    return EnrollmentResult(added=added)
