# helpdesk/utils/security.py
"""
Symmetric encryption for secrets kept in the settings table (ERP API keys).
"""
import hmac
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..core.config import settings

logger = logging.getLogger(__name__)


def _build_cipher(key: Optional[str]) -> Optional[Fernet]:
    if not key:
        if settings.is_production:
            raise RuntimeError(
                "FATAL: ENCRYPTION_KEY not configured. "
                "It is required in production to encrypt ERP credentials."
            )
        logger.warning("ENCRYPTION_KEY not configured. Stored secrets are kept in plain text.")
        return None
    try:
        return Fernet(key.encode())
    except ValueError as e:
        if settings.is_production:
            raise RuntimeError(
                f"FATAL: invalid ENCRYPTION_KEY: {e}. "
                'Generate one with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"'
            ) from e
        logger.error(f"Invalid ENCRYPTION_KEY, encryption disabled: {e}")
        return None


cipher_suite = _build_cipher(settings.encryption_key)


def encrypt_data(data: str) -> str:
    """Encrypts a string."""
    if not cipher_suite or not data:
        return data
    return cipher_suite.encrypt(data.encode()).decode()


def decrypt_data(token: str) -> str:
    """Decrypts a token; values stored before encryption was enabled come back as-is."""
    if not cipher_suite or not token:
        return token
    try:
        return cipher_suite.decrypt(token.encode()).decode()
    except InvalidToken:
        logger.warning("Could not decrypt a stored value. Assuming legacy plain text.")
        return token


def mask_secret(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    if len(value) <= 4:
        return "****"
    return f"****{value[-4:]}"


def secrets_match(provided: Optional[str], expected: str) -> bool:
    """Constant-time comparison for API keys."""
    if provided is None:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())
