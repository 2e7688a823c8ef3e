"""
Types du flux de paiement.

- PurchaseIntent: ce que le client demande (mise en forme de la session, confiance client).
- ConfirmedPayment: ce que Stripe confirme (faits financiers, confiance passerelle uniquement).

Les deux types sont distincts: la réconciliation ne manipule que ConfirmedPayment.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from .errors import InvalidRequest


# Plafond Stripe de unit_amount (unités mineures)
MAX_UNIT_AMOUNT = 99_999_999


class PurchaseKind(str, Enum):
    CLUB_JOIN = "club_join"
    EVENT_REGISTRATION = "event_registration"


def parse_fee_minor_units(fee: Any) -> int:
    """
    Convertit un montant (int|float|str) en unités mineures.
    - 10 -> 1000, "12.5" -> 1250, 0 -> 0
    - InvalidRequest si non numérique, NaN/infini, booléen ou négatif.
    - InvalidRequest au-delà du plafond Stripe (MAX_UNIT_AMOUNT).
    """
    if fee is None or isinstance(fee, bool):
        raise InvalidRequest("Montant invalide")
    try:
        value = float(str(fee).strip()) if isinstance(fee, str) else float(fee)
    except (TypeError, ValueError):
        raise InvalidRequest("Montant invalide")
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise InvalidRequest("Montant invalide")
    minor = value * 100
    if minor > MAX_UNIT_AMOUNT:
        raise InvalidRequest("Montant invalide")
    return int(round(minor))


def parse_subject_id(subject_id: Any, label: str = "subject_id") -> str:
    """Normalise un identifiant (UUID) de club/événement; InvalidRequest si format inconnu."""
    raw = str(subject_id or "").strip()
    try:
        return str(UUID(raw))
    except ValueError:
        raise InvalidRequest(f"Identifiant invalide: {label}")


@dataclass(frozen=True)
class PurchaseIntent:
    kind: PurchaseKind
    subject_id: str
    subject_name: str
    fee_minor_units: int
    buyer_email: str
    club_id: Optional[str] = None
    club_name: Optional[str] = None

    @classmethod
    def club_join(cls, *, club_id: Any, club_name: str, fee: Any, buyer_email: str) -> "PurchaseIntent":
        return cls(
            kind=PurchaseKind.CLUB_JOIN,
            subject_id=parse_subject_id(club_id, "club_id"),
            subject_name=(club_name or "").strip(),
            fee_minor_units=parse_fee_minor_units(fee),
            buyer_email=_require_email(buyer_email),
        )

    @classmethod
    def event_registration(
        cls,
        *,
        event_id: Any,
        title: str,
        fee: Any,
        buyer_email: str,
        club_id: Any,
        club_name: str,
    ) -> "PurchaseIntent":
        return cls(
            kind=PurchaseKind.EVENT_REGISTRATION,
            subject_id=parse_subject_id(event_id, "event_id"),
            subject_name=(title or "").strip(),
            fee_minor_units=parse_fee_minor_units(fee),
            buyer_email=_require_email(buyer_email),
            club_id=parse_subject_id(club_id, "club_id"),
            club_name=(club_name or "").strip(),
        )


@dataclass(frozen=True)
class ConfirmedPayment:
    """Session Stripe payée, relue côté serveur."""

    session_id: str
    payment_id: str
    kind: PurchaseKind
    subject_id: str
    subject_name: str
    buyer_email: str
    amount_minor_units: int
    currency: str
    club_id: Optional[str] = None
    club_name: Optional[str] = None

    @property
    def amount(self) -> float:
        return round(self.amount_minor_units / 100, 2)


def _require_email(email: Optional[str]) -> str:
    value = (email or "").strip().lower()
    if not value or "@" not in value:
        raise InvalidRequest("Email acheteur manquant")
    return value
