import hmac
import logging
from functools import wraps

from flask import current_app, request

from lmnp.errors import AuthError, ConfigurationError

logger = logging.getLogger(__name__)


def check_api_key(expected, supplied):
    """Compare the shared secret with the credential sent by the client.

    A server without a configured secret refuses every protected request
    instead of letting it through.
    """
    if not expected:
        raise ConfigurationError("API_KEY non configurée sur le serveur")
    if not supplied or not hmac.compare_digest(str(supplied).encode(), str(expected).encode()):
        raise AuthError()


def require_api_key(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        header = current_app.config["API_KEY_HEADER"]
        try:
            check_api_key(current_app.config.get("API_KEY"), request.headers.get(header))
        except AuthError:
            logger.warning("Rejected %s %s: bad or missing %s", request.method, request.path, header)
            raise
        return view(*args, **kwargs)
    return wrapper
