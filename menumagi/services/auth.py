"""
Owner Authentication

Passwords are hashed with werkzeug; bearer tokens are timestamped,
signed payloads from itsdangerous, checked against the configured
maximum age on every request.
"""

import logging
from typing import Any, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from menumagi.core.config import get_settings

logger = logging.getLogger(__name__)

TOKEN_SALT = "owner-auth"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(get_settings().secret_key, salt=TOKEN_SALT)


def create_access_token(owner_id: str, email: str) -> str:
    return _serializer().dumps({"uid": owner_id, "email": email})


def decode_access_token(token: str) -> Optional[dict[str, Any]]:
    """Return the token payload, or None if it is forged or expired."""
    try:
        return _serializer().loads(token, max_age=get_settings().token_max_age_seconds)
    except SignatureExpired:
        logger.info("Rejected expired owner token")
        return None
    except BadSignature:
        logger.warning("Rejected owner token with bad signature")
        return None
