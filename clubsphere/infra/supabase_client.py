"""
Acquisition du client Supabase service-role.
Le client n'est plus un singleton global: le lifespan l'ouvre au démarrage,
le dépose sur app.state et le referme à l'arrêt.
"""
import logging
from typing import Optional
from supabase import create_client, Client
from clubsphere.config import SUPABASE_URL, SUPABASE_SERVICE_KEY

logger = logging.getLogger(__name__)

def is_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_SERVICE_KEY)

def open_service_client() -> Client:
    """
    Client service-role (bypass RLS): utilisé par le ledger et la vérification des tokens.
    - Soulève RuntimeError si l'URL ou la clé service manquent.
    """
    if not is_configured():
        raise RuntimeError("SUPABASE_URL/SUPABASE_SERVICE_KEY manquants pour open_service_client()")
    return create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)

def close_client(client: Optional[Client]) -> None:
    """Ferme la session HTTP PostgREST sous-jacente (best-effort)."""
    if client is None:
        return
    session = getattr(getattr(client, "postgrest", None), "session", None)
    close = getattr(session, "close", None)
    if callable(close):
        try:
            close()
        except Exception:
            logger.warning("infra.supabase_client.close_client failed", exc_info=True)
