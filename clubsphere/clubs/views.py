"""Endpoints API de lecture des clubs.
- Listing et détail publics, lus via le ledger store injecté.
- Le CRUD (création/mise à jour/suppression) reste hors de ce service.
"""
from fastapi import APIRouter, Depends, HTTPException

from clubsphere.ledger.store import LedgerStore, CLUBS
from clubsphere.payments.intents import parse_subject_id
from clubsphere.utils.dependencies import get_ledger_store

router = APIRouter(prefix="/api/v1/clubs", tags=["Clubs API"])

@router.get("")
def list_clubs(limit: int = 100, store: LedgerStore = Depends(get_ledger_store)):
    """Liste des clubs, les plus récents d'abord."""
    return {"items": store.find(CLUBS, limit=max(1, min(limit, 500)), order_by="created_at", desc=True)}

@router.get("/{club_id}")
def get_club(club_id: str, store: LedgerStore = Depends(get_ledger_store)):
    """Détail d'un club.
    - 400 si l'identifiant n'est pas un UUID, 404 si introuvable.
    """
    club = store.find_one(CLUBS, {"id": parse_subject_id(club_id, "club_id")})
    if not club:
        raise HTTPException(status_code=404, detail="Club introuvable")
    return club
