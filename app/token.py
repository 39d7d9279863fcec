# app/token.py
from datetime import datetime, timedelta, timezone
import jwt
from .config import settings

def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    """Signed bearer token whose ``sub`` is the user's email."""
    now = datetime.now(timezone.utc)
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    exp = now + timedelta(minutes=minutes)
    payload = {"sub": subject, "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
