"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Ouvre le client Supabase service-role et le ledger store (app.state.supabase, app.state.ledger),
  déclare les index uniques, puis les referme à l'arrêt.
- Initialise FastAPILimiter (Redis) avec options de test (fakeredis).
- Variables d'environnement supportées:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: désactive complètement le rate limiting (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests)
  - LOCAL_RATE_LIMIT_FALLBACK=1: active un fallback local si l'init échoue
"""
import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from redis import asyncio as aioredis
from redis.exceptions import RedisError
from fastapi_limiter import FastAPILimiter

from clubsphere.infra import supabase_client
from clubsphere.ledger.store import SupabaseLedgerStore
from clubsphere.payments.checkout import ensure_supported_currency

try:
    from fakeredis import aioredis as fake_aioredis  # tests only
except ImportError:
    fake_aioredis = None

logger = logging.getLogger("uvicorn.error")

def open_ledger(app: FastAPI) -> None:
    """
    Acquiert le handle de stockage du processus.
    - Sans configuration Supabase: le store reste absent (les routes répondent 503).
    - Un store déjà posé sur app.state (tests) est conservé tel quel.
    """
    if getattr(app.state, "ledger", None) is not None:
        return
    app.state.supabase = None
    app.state.ledger = None
    if not supabase_client.is_configured():
        logger.warning("Ledger store disabled: SUPABASE_URL/SUPABASE_SERVICE_KEY missing")
        return
    client = supabase_client.open_service_client()
    store = SupabaseLedgerStore(client)
    store.ensure_indexes()
    app.state.supabase = client
    app.state.ledger = store
    logger.info("Ledger store ready")

def close_ledger(app: FastAPI) -> None:
    store = getattr(app.state, "ledger", None)
    if store is not None:
        store.close()
    app.state.ledger = None
    app.state.supabase = None
    logger.info("Ledger store closed")

async def init_rate_limiter(app: FastAPI) -> None:
    """
    Configure le rate limiting et gère les fallbacks.
    - En cas d'échec de Redis et sans fallback, le rate limiting est désactivé proprement.
    """
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        return
    try:
        if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
            if not fake_aioredis:
                raise RuntimeError("USE_FAKE_REDIS_FOR_TESTS=1 mais fakeredis n'est pas installé.")
            r = fake_aioredis.FakeRedis(decode_responses=True)
        else:
            redis_url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
            r = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(r)
        app.state.rate_limit_enabled = True
        logger.info("Rate limiting enabled")
    except (RedisError, RuntimeError, OSError) as e:
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            app.state.rate_limit_enabled = True
            logger.warning(f"Rate limiting falling back to local in-memory due to init error: {e}")
        else:
            app.state.rate_limit_enabled = False
            logger.warning(f"Rate limiting disabled due to init error: {e}")

@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_supported_currency()
    open_ledger(app)
    await init_rate_limiter(app)
    try:
        yield
    finally:
        close_ledger(app)
