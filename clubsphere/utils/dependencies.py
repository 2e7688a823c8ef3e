"""
Dépendances FastAPI vers les ressources de processus ouvertes par le lifespan.
Les vues ne référencent jamais un client global: elles reçoivent le store et la gateway injectés.
"""
from fastapi import HTTPException, Request

from clubsphere.ledger.store import LedgerStore
from clubsphere.payments import stripe_client

def get_ledger_store(request: Request) -> LedgerStore:
    store = getattr(request.app.state, "ledger", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Base de données indisponible")
    return store

def get_gateway():
    return stripe_client

def get_auth_client(request: Request):
    client = getattr(request.app.state, "supabase", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Service d'authentification indisponible")
    return client
