from __future__ import annotations

from fastapi import Depends, Request
import jwt
from sqlalchemy.orm import Session

from . import crud, models, security
from .config import settings
from .database import get_db
from .errors import UnauthenticatedError


def authenticate_user(db: Session, email: str, password: str) -> models.User | None:
    """
    Authenticates a user by email and password.

    In FastAPI, the `OAuth2PasswordRequestForm` uses the field name `username`,
    but we are using it to hold the user's email address.

    Returns the user object if authentication is successful, otherwise None.
    """
    user = crud.get_user_by_email(db, email)
    if not user or not security.verify_password(password, user.hashed_password):
        return None
    return user


def get_token_from_cookie_or_header(request: Request) -> str | None:
    """Extract token from either Authorization header or access_token cookie"""
    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:]

    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        return cookie_token[7:]

    return None


def _user_from_token(db: Session, token: str) -> models.User | None:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        return None
    email: str | None = payload.get("sub")
    if email is None:
        return None
    return crud.get_user_by_email(db, email=email)


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> models.User | None:
    """Caller identity if a valid token was sent, else None."""
    token = get_token_from_cookie_or_header(request)
    if not token:
        return None
    return _user_from_token(db, token)


def get_current_user(
    user: models.User | None = Depends(get_optional_user),
) -> models.User:
    if user is None:
        raise UnauthenticatedError("User must be authenticated")
    return user
