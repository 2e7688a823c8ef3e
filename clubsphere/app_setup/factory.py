"""
Factory d'application recommandée pour les entrypoints (ex: clubsphere.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base et no-cache
      - gestionnaires d'exceptions
      - tous les routers (payments, clubs, events, health)
    Retour:
      FastAPI prêt à être utilisé par le serveur ASGI.
    """
    app = FastAPI(title="ClubSphere API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)

    @app.get("/", include_in_schema=False)
    def root():
        return {"message": "ClubSphere API"}

    return app
