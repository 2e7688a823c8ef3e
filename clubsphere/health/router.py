from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from clubsphere.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/ledger")
def health_ledger(request: Request):
    store = getattr(request.app.state, "ledger", None)
    if store is None:
        return JSONResponse({"configured": False, "connect_ok": False}, status_code=503)
    ok = store.ping()
    return JSONResponse({"configured": True, "connect_ok": ok}, status_code=200 if ok else 503)

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return rate_limit_health_info(request)
