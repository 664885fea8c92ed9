"""
Password hashing for stored user credentials.

Passwords are derived with scrypt and stored as
``scrypt$<n>$<r>$<p>$<salt>$<hash>`` (salt and hash base64-encoded), so the
cost parameters travel with each hash.
"""

import base64
import os

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

_N = 2**14
_R = 8
_P = 1
_LENGTH = 32
_SALT_BYTES = 16


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode()


def hash_password(password: str) -> str:
    """Derive a salted scrypt hash for ``password``."""
    salt = os.urandom(_SALT_BYTES)
    kdf = Scrypt(salt=salt, length=_LENGTH, n=_N, r=_R, p=_P)
    digest = kdf.derive(password.encode())
    return f"scrypt${_N}${_R}${_P}${_b64encode(salt)}${_b64encode(digest)}"


def verify_password(password: str, stored: str) -> bool:
    """Check ``password`` against a hash produced by :func:`hash_password`."""
    try:
        scheme, n, r, p, salt, digest = stored.split("$")
    except ValueError:
        return False
    if scheme != "scrypt":
        return False

    kdf = Scrypt(
        salt=base64.b64decode(salt),
        length=_LENGTH,
        n=int(n),
        r=int(r),
        p=int(p),
    )
    try:
        kdf.verify(password.encode(), base64.b64decode(digest))
    except InvalidKey:
        return False
    return True
