"""
Tokens and credential encryption.

Requests are authenticated with signed JWT access tokens carrying the user
(sub) and organization (org_id). Credential rows behind encrypted data
source options hold Fernet ciphertext under a key derived from
APPFORGE_SECRET_KEY, so a secret key change makes existing credentials
unreadable.
"""

import base64
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from src.config import get_settings

TOKEN_TYPE = "access"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None
) -> str:
    """
    Sign an access token for the given claims.

    Args:
        data: Claims to sign, at least sub and org_id for API callers
        expires_delta: Lifetime, defaults to APPFORGE_ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded token
    """
    settings = get_settings()
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    claims = {
        **data,
        "exp": datetime.now(timezone.utc) + lifetime,
        "type": TOKEN_TYPE,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }

    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any] | None:
    """
    Verify a token and return its claims.

    Signature, expiry, issuer and audience are checked. Tokens minted for
    another purpose are rejected when expected_type is given.

    Returns:
        Claims, or None when the token does not verify
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )
    except jwt.InvalidTokenError:
        return None

    if expected_type is not None and payload.get("type") != expected_type:
        return None
    return payload


# =============================================================================
# Credential encryption
# =============================================================================


def _get_fernet_key() -> bytes:
    """Fernet key for credential rows: HKDF over the secret key, salted with APPFORGE_FERNET_SALT."""
    settings = get_settings()

    kdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=settings.fernet_salt.encode(),
        info=b"appforge-credentials-encryption",
    )

    return base64.urlsafe_b64encode(kdf.derive(settings.secret_key.encode()))


def encrypt_secret(plaintext: str) -> str:
    """Encrypt a credential value into the text stored in Credential.value_ciphertext."""
    token = Fernet(_get_fernet_key()).encrypt(plaintext.encode())
    return base64.urlsafe_b64encode(token).decode()


def decrypt_secret(encrypted: str) -> str:
    """Inverse of encrypt_secret."""
    token = base64.urlsafe_b64decode(encrypted.encode())
    return Fernet(_get_fernet_key()).decrypt(token).decode()
