"""
Registre central des routers (API v1, health).
- API v1: payments, clubs, events
- Health: health_router
"""
from fastapi import FastAPI
from clubsphere.payments import views as payments_views
from clubsphere.clubs import views as clubs_views
from clubsphere.events import views as events_views
from clubsphere.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(payments_views.router)
    app.include_router(clubs_views.router)
    app.include_router(events_views.router)
    # Health & monitoring
    app.include_router(health_router)
