"""
Ledger Store: contrat de persistance du sous-système de paiement.

Deux familles de collections:
- ledger (memberships, registrations, payments): insert-if-absent, unicité sur payment_id;
- agrégats (clubs, events): lecture + ajout conditionnel dans members/attendees.

Les seules mutations autorisées sont insert_if_absent et append_if_absent.
Aucun verrou applicatif: la correction repose sur l'index unique (insert) et
l'atomicité d'un UPDATE mono-ligne filtré (append).
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from postgrest.exceptions import APIError

from .records import MEMBERSHIPS, REGISTRATIONS, PAYMENTS

logger = logging.getLogger(__name__)

CLUBS = "clubs"
EVENTS = "events"
USERS = "users"

# Index uniques déclarés sur le ledger
UNIQUE_KEYS: Dict[str, str] = {
    MEMBERSHIPS: "payment_id",
    REGISTRATIONS: "payment_id",
    PAYMENTS: "payment_id",
}

# Agrégat -> (champ ensemble, fonction SQL d'ajout conditionnel)
AGGREGATE_SETS: Dict[str, tuple] = {
    CLUBS: ("members", "append_club_member"),
    EVENTS: ("attendees", "append_event_attendee"),
}

UNIQUE_VIOLATION = "23505"


class StoreConflict(Exception):
    """Violation d'unicité à l'insertion: l'enregistrement existe déjà."""

    def __init__(self, collection: str, key: str, value: Any):
        super().__init__(f"{collection}.{key}={value} existe déjà")
        self.collection = collection
        self.key = key
        self.value = value


class LedgerStore(ABC):
    """Capacité de stockage consommée par le checkout et le réconciliateur."""

    @abstractmethod
    def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        *,
        limit: int = 100,
        order_by: Optional[str] = None,
        desc: bool = False,
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def find_one(self, collection: str, filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def insert_if_absent(self, collection: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insère row; soulève StoreConflict si la clé unique de la collection existe déjà.
        Le perdant d'une course n'écrase jamais le gagnant.
        """

    @abstractmethod
    def append_if_absent(self, collection: str, subject_id: str, value: str) -> bool:
        """
        Ajoute value à l'ensemble de l'agrégat si absent. Retourne True si une ligne a été
        modifiée, False si l'agrégat est introuvable ou contient déjà value.
        """

    @abstractmethod
    def ensure_indexes(self) -> None:
        ...

    def ping(self) -> bool:
        try:
            self.find(CLUBS, limit=1)
            return True
        except Exception:
            logger.warning("ledger.store.ping failed", exc_info=True)
            return False

    def close(self) -> None:
        return None


def _error_code(exc: APIError) -> Optional[str]:
    code = getattr(exc, "code", None)
    if code:
        return str(code)
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0].get("code")
    return None


class SupabaseLedgerStore(LedgerStore):
    """
    Implémentation PostgREST (client service-role).
    - Le schéma (tables, index uniques, fonctions d'ajout) est décrit dans schema.sql.
    - ensure_indexes() appelle la fonction ensure_ledger_indexes() côté base.
    """

    def __init__(self, client):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            raise RuntimeError("Ledger store fermé")
        return self._client

    def find(self, collection, filters=None, *, limit=100, order_by=None, desc=False):
        query = self.client.table(collection).select("*")
        for key, value in (filters or {}).items():
            query = query.eq(key, value)
        if order_by:
            query = query.order(order_by, desc=desc)
        res = query.limit(limit).execute()
        return res.data or []

    def find_one(self, collection, filters):
        rows = self.find(collection, filters, limit=1)
        return rows[0] if rows else None

    def insert_if_absent(self, collection, row):
        key = UNIQUE_KEYS.get(collection)
        try:
            res = self.client.table(collection).insert(row).execute()
        except APIError as e:
            if key and _error_code(e) == UNIQUE_VIOLATION:
                raise StoreConflict(collection, key, row.get(key)) from e
            raise
        data = res.data or []
        if isinstance(data, list):
            return data[0] if data else row
        return data or row

    def append_if_absent(self, collection, subject_id, value):
        if collection not in AGGREGATE_SETS:
            raise ValueError(f"Collection sans ensemble: {collection}")
        _, function_name = AGGREGATE_SETS[collection]
        res = self.client.rpc(function_name, {"p_subject_id": subject_id, "p_value": value}).execute()
        return bool(res.data)

    def ensure_indexes(self):
        self.client.rpc("ensure_ledger_indexes", {}).execute()
        logger.info("ledger.store.ensure_indexes ok keys=%s", sorted(UNIQUE_KEYS))

    def close(self):
        from clubsphere.infra.supabase_client import close_client
        close_client(self._client)
        self._client = None
