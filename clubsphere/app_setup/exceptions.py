"""
Gestionnaires d'exceptions utilisés par la factory.
- HTTPException (y compris InvalidRequest / GatewayError du module payments) -> JSON {"detail": ...}
- Les erreurs passerelle sont journalisées: elles signalent un problème côté Stripe.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from clubsphere.payments.errors import GatewayError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def gateway_error(request: Request, exc: GatewayError):
        logger.warning("gateway error path=%s detail=%s", request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(HTTPException)
    async def json_http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
