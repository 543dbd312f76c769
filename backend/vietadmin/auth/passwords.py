"""
Password hashing with explicitly tagged schemes.

Stored hashes carry their scheme as a prefix (``bcrypt:<hash>``). New hashes
are always bcrypt. The ``legacy`` scheme only verifies hashes imported from
the previous platform (``sh_<hex>_<length>``) and is never used to hash.
"""
from __future__ import annotations

import hmac
from dataclasses import dataclass
from enum import Enum

import bcrypt

from ..config import settings

BCRYPT_MAX_PASSWORD_BYTES = 72


class HashScheme(str, Enum):
    BCRYPT = "bcrypt"
    LEGACY = "legacy"


@dataclass(frozen=True)
class PasswordHash:
    scheme: HashScheme
    value: str

    @classmethod
    def parse(cls, stored: str) -> "PasswordHash":
        scheme, separator, value = stored.partition(":")
        if not separator or not value:
            raise ValueError("Password hash is missing its scheme tag")
        try:
            return cls(scheme=HashScheme(scheme), value=value)
        except ValueError:
            raise ValueError(f"Unknown password hash scheme '{scheme}'") from None

    def __str__(self) -> str:
        return f"{self.scheme.value}:{self.value}"


def _utf16_code_points(password: str) -> list[int]:
    # Mirrors per-index codePointAt() over UTF-16 code units
    encoded = password.encode("utf-16-le")
    units = [int.from_bytes(encoded[i:i + 2], "little") for i in range(0, len(encoded), 2)]
    points: list[int] = []
    for index, unit in enumerate(units):
        if 0xD800 <= unit <= 0xDBFF and index + 1 < len(units) and 0xDC00 <= units[index + 1] <= 0xDFFF:
            points.append(0x10000 + ((unit - 0xD800) << 10) + (units[index + 1] - 0xDC00))
        else:
            points.append(unit)
    return points


def legacy_digest(password: str) -> str:
    """Compute the legacy ``sh_`` digest. Verification only."""
    points = _utf16_code_points(password)
    value = 0
    for point in points:
        value = (value * 31 + point) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return f"sh_{abs(value):x}_{len(points)}"


def hash_password(password: str, rounds: int | None = None) -> str:
    encoded = password.encode()
    if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    hashed = bcrypt.hashpw(encoded, salt).decode()
    return str(PasswordHash(scheme=HashScheme.BCRYPT, value=hashed))


def verify_password(password: str, stored: str) -> bool:
    try:
        parsed = PasswordHash.parse(stored)
    except ValueError:
        return False

    if parsed.scheme is HashScheme.LEGACY:
        return hmac.compare_digest(legacy_digest(password), parsed.value)

    encoded = password.encode()
    if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, parsed.value.encode())


def needs_rehash(stored: str) -> bool:
    try:
        return PasswordHash.parse(stored).scheme is not HashScheme.BCRYPT
    except ValueError:
        return True
