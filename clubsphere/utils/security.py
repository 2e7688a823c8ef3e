from fastapi import Request, HTTPException, Depends
from typing import Optional, Dict, Any, Callable
import logging

from clubsphere.ledger.store import LedgerStore, USERS
from clubsphere.utils.dependencies import get_ledger_store, get_auth_client

COOKIE_NAME = "sb_access"
ROLES = ("admin", "moderator", "user")

logger = logging.getLogger(__name__)

def determine_role(row: Optional[Dict[str, Any]]) -> str:
    """Rôle stocké dans la table users; 'user' par défaut ou si valeur inconnue."""
    role = str((row or {}).get("role", "")).lower()
    return role if role in ROLES else "user"

def extract_token(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)

def verify_token(auth_client, token: str) -> str:
    """Vérifie le token auprès de Supabase Auth et retourne l'email du principal."""
    res = auth_client.auth.get_user(token)
    user = getattr(res, "user", None)
    email = getattr(user, "email", None)
    if not email:
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    return email.strip().lower()

def get_current_user(request: Request, store: LedgerStore = Depends(get_ledger_store)) -> Dict[str, Any]:
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")
    auth_client = get_auth_client(request)
    try:
        email = verify_token(auth_client, token)
    except HTTPException:
        raise
    except Exception:
        logger.warning("utils.security.get_current_user token rejected", exc_info=True)
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    row = store.find_one(USERS, {"email": email})
    return {"email": email, "role": determine_role(row), "name": (row or {}).get("name")}

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_role(*roles: str) -> Callable[..., Dict[str, Any]]:
    def _dep(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user.get("role") not in roles:
            raise HTTPException(status_code=403, detail="Accès interdit")
        return user
    return _dep

require_admin = require_role("admin")
