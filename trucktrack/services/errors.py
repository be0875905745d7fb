# trucktrack/services/errors.py
"""
Exceptions métier. ``ValueError`` reste l'erreur de validation de base
(HTTP 400); les classes ci-dessous sont traduites en 404, 409 et 403 par
les handlers de main.py.
"""


class NotFoundError(LookupError):
    """Enregistrement introuvable."""


class ConflictError(ValueError):
    """Opération refusée à cause de l'état d'autres enregistrements."""


class PermissionDeniedError(PermissionError):
    """Rôle insuffisant pour l'action demandée."""
