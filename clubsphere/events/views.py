"""Endpoints API de lecture des événements.
- Listing (filtrable par club) et détail, lus via le ledger store injecté.
"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException

from clubsphere.ledger.store import LedgerStore, EVENTS
from clubsphere.payments.intents import parse_subject_id
from clubsphere.utils.dependencies import get_ledger_store

router = APIRouter(prefix="/api/v1/events", tags=["Events API"])

@router.get("")
def list_events(club_id: Optional[str] = None, limit: int = 100, store: LedgerStore = Depends(get_ledger_store)):
    filters: Dict[str, Any] = {}
    if club_id:
        filters["club_id"] = parse_subject_id(club_id, "club_id")
    return {"items": store.find(EVENTS, filters, limit=max(1, min(limit, 500)), order_by="event_date")}

@router.get("/{event_id}")
def get_event(event_id: str, store: LedgerStore = Depends(get_ledger_store)):
    """Détail d'un événement; 404 si introuvable."""
    event = store.find_one(EVENTS, {"id": parse_subject_id(event_id, "event_id")})
    if not event:
        raise HTTPException(status_code=404, detail="Evenement introuvable")
    return event
