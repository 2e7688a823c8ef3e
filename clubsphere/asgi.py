"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn/uvicorn-workers) importe `clubsphere.asgi:app`.
- Toute la configuration FastAPI est centralisée dans clubsphere.app_setup.factory.
"""

from clubsphere.app import app
