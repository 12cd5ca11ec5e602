from __future__ import annotations

from passlib.context import CryptContext
import hashlib

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _prepare(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    if len(password.encode("utf-8")) > 72:
        return hashlib.sha256(password.encode("utf-8")).hexdigest()
    return password


def hash_password(password: str) -> str:
    return pwd_context.hash(_prepare(password))


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(_prepare(password), password_hash)
    except ValueError:
        return False
