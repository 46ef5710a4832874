"""At-rest wrapping of stored secrets.

Wrapped values carry the ``enc::`` marker followed by a Fernet token. The
Fernet key is the SHA-256 digest of ``settings.ENCRYPTION_KEY``, so any
passphrase length works.
"""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

WRAPPED_MARKER = "enc::"


def _passphrase() -> str:
    return getattr(settings, "ENCRYPTION_KEY", "") or ""


def _fernet() -> Fernet:
    passphrase = _passphrase()
    if not passphrase:
        raise ImproperlyConfigured("ENCRYPTION_KEY must be set to wrap stored secrets.")
    return Fernet(base64.urlsafe_b64encode(hashlib.sha256(passphrase.encode()).digest()))


def wrapping_enabled() -> bool:
    return bool(_passphrase())


def is_wrapped_secret(value) -> bool:
    return isinstance(value, str) and value.startswith(WRAPPED_MARKER)


def wrap_secret(plaintext: str) -> str:
    if is_wrapped_secret(plaintext):
        return plaintext
    return WRAPPED_MARKER + _fernet().encrypt(plaintext.encode()).decode()


def unwrap_secret(stored: str) -> str:
    """Return the plaintext behind ``stored``; unwrapped values pass through.

    Raises ``ImproperlyConfigured`` when the token does not match the current
    ``ENCRYPTION_KEY``.
    """
    if not is_wrapped_secret(stored):
        return stored
    try:
        return _fernet().decrypt(stored[len(WRAPPED_MARKER):].encode()).decode()
    except InvalidToken as exc:
        raise ImproperlyConfigured("Stored secret does not match ENCRYPTION_KEY.") from exc
