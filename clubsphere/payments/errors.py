"""
Erreurs du flux de paiement.
Sous-classes de HTTPException: remontées telles quelles jusqu'au handler JSON de l'app.
"""
from fastapi import HTTPException


class InvalidRequest(HTTPException):
    """Frais, identifiant de sujet ou metadata invalides: rejet immédiat, aucune écriture."""

    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class GatewayError(HTTPException):
    """Echec d'un appel Stripe (création ou lecture de session). Pas de retry local."""

    def __init__(self, detail: str):
        super().__init__(status_code=502, detail=detail)
