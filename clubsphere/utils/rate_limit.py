from typing import Dict, Any
from fastapi import Request, Response, HTTPException
import os
import time
import hashlib
import logging

from clubsphere.utils.security import COOKIE_NAME

logger = logging.getLogger(__name__)

def _user_key_from_request(req: Request) -> str:
    # Priorité: bearer/cookie (hashé) puis IP
    token = req.cookies.get(COOKIE_NAME)
    auth_header = req.headers.get("Authorization", "")
    if not token and auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
    path = req.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{h}:{path}"
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{path}"

def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        # Forcer le fallback mémoire en DEV si demandé
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            now = time.time()
            window = f"{times}/{seconds}:"
            key = window + _user_key_from_request(request)
            store = getattr(request.app.state, "_rl_store", {})
            hits = [t for t in store.get(key, []) if now - t < seconds]
            # Purge des clés de cette fenêtre sans hit récent
            for stale in [k for k, v in store.items() if k.startswith(window) and (not v or now - v[-1] >= seconds)]:
                del store[stale]
            if len(hits) >= times:
                raise HTTPException(status_code=429, detail="Too Many Requests")
            hits.append(now)
            store[key] = hits
            request.app.state._rl_store = store
            return

        # Respecter le flag global (lifespan)
        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return

        from fastapi_limiter.depends import RateLimiter

        async def _identifier(req: Request) -> str:
            return _user_key_from_request(req)
        return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)

    limiter_ready = False
    try:
        from fastapi_limiter import FastAPILimiter
        limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
    except ImportError:
        limiter_ready = False
    backend = "redis" if limiter_ready else None

    info: Dict[str, Any] = {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": backend,
    }

    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if backend == "redis" and redis_url:
        from urllib.parse import urlparse
        p = urlparse(redis_url)
        info["redis"] = {
            "scheme": p.scheme,
            "host": p.hostname,
            "port": p.port,
        }

    return info
