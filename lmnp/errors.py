"""Error taxonomy of the declaration service.

Every error a client may see derives from :class:`ServiceError`; the
application turns it into ``{"ok": false, "error": ...}`` with
``status_code`` as the HTTP status.
"""
from __future__ import annotations


class ServiceError(Exception):
    status_code = 500
    message = "Erreur interne LMNP"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(ServiceError):
    status_code = 400
    message = "declarationId ou data manquants"


class AuthError(ServiceError):
    status_code = 401
    message = "Clé d'accès invalide ou manquante"


class ConfigurationError(ServiceError):
    status_code = 500
    message = "Configuration du serveur incomplète"


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class GenerationError(ServiceError):
    status_code = 500
    message = "Erreur interne LMNP"


class TemplateNotFound(GenerationError):
    pass


class TemplateUnreadable(GenerationError):
    pass


class SerializationFailure(GenerationError):
    pass


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------


class TokenNotFound(ServiceError):
    status_code = 404
    message = "Lien de téléchargement inconnu"


class TokenExpired(ServiceError):
    status_code = 410
    message = "Lien de téléchargement expiré"


class UnknownKind(ServiceError):
    status_code = 400
    message = "Type de fichier inconnu"


class KindMismatch(ServiceError):
    status_code = 400
    message = "Le type demandé ne correspond pas au lien"


class StreamingFailure(ServiceError):
    status_code = 500
    message = "Fichier indisponible"
