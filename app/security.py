"""
Password hashing for the accounts that own search credits and history.
"""
from __future__ import annotations

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    # unknown/legacy hash formats count as a failed login, not a server error
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False
