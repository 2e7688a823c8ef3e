"""
Enregistrements du ledger (append-only).

Un enregistrement naît une seule fois, à la première réconciliation réussie d'un
payment_id, et n'est plus jamais modifié: pas de méthode de mise à jour ici,
seulement la sérialisation vers une ligne de table.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

MEMBERSHIPS = "memberships"
REGISTRATIONS = "registrations"
PAYMENTS = "payments"

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class MembershipRecord:
    """Adhésion à un club, clé d'idempotence: payment_id."""

    club_id: str
    user_email: str
    payment_id: str
    status: str = "active"
    joined_at: str = field(default_factory=utc_now_iso)

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RegistrationRecord:
    """Inscription à un événement, clé d'idempotence: payment_id."""

    event_id: str
    user_email: str
    payment_id: str
    club_id: Optional[str] = None
    status: str = "registered"
    reg_at: str = field(default_factory=utc_now_iso)

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PaymentRecord:
    """
    Trace d'audit d'un paiement confirmé par la passerelle.
    amount est exprimé en unités majeures (ex: 10.0 pour 1000 centimes).
    """

    payment_id: str
    user_email: str
    subject_id: str
    amount: float
    kind: str
    currency: str = "usd"
    session_id: Optional[str] = None
    club_id: Optional[str] = None
    status: str = "paid"
    created_at: str = field(default_factory=utc_now_iso)

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)
