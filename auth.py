import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

import models
from database import get_db
from errors import AuthenticationError, AuthorizationError, ConflictError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hash(password):
    return pwd_context.hash(password)


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, secret_key: str, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def signup(db: Session, name: str, email: str, password: str, role: str) -> models.User:
    email = normalize_email(email)
    if db.query(models.User).filter(models.User.email == email).first():
        raise ConflictError("User with this email already exists")

    user = models.User(
        name=name.strip(),
        email=email,
        password=get_password_hash(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User created: %s as %s", user.email, user.role)
    return user


def signin(db: Session, email: str, password: str, role: Optional[str] = None) -> models.User:
    user = db.query(models.User).filter(models.User.email == normalize_email(email)).first()
    if not user or not verify_password(password, user.password):
        raise AuthenticationError("Invalid email or password")

    if role and user.role != role:
        raise AuthorizationError(
            f"This account is registered as a {user.role}. Please select the correct role."
        )

    logger.info("User authenticated: %s as %s", user.email, user.role)
    return user


def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[models.User]:
    """Resolve the bearer token if one was sent; anonymous callers get None."""
    if credentials is None:
        return None
    settings = request.app.state.settings
    try:
        payload = jwt.decode(credentials.credentials, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")
    user_id = payload.get("sub")
    if user_id is None:
        raise AuthenticationError("Invalid or expired token")
    user = db.get(models.User, user_id)
    if user is None:
        raise AuthenticationError("Invalid or expired token")
    return user


def get_current_user(user: Optional[models.User] = Depends(get_optional_user)) -> models.User:
    if user is None:
        raise AuthenticationError("Not authenticated")
    return user
