import logging
import os
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlmodel import Session, select

from .db import engine
from .errors import ValidationError
from .models import User, utcnow

logger = logging.getLogger(__name__)

SECRET_KEY = os.getenv("APP_SECRET_KEY", "dev-secret-change-this")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 12

# clerk: customers, readings, complaints; finance: bills, payments, ledger, reports
ROLES = ("admin", "finance", "clerk")

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    now = utcnow()
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "iat": now})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def authenticate_user(username: str, password: str) -> Optional[User]:
    with Session(engine) as session:
        user = session.exec(select(User).where(User.username == username)).first()
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user


def create_user(session: Session, username: str, password: str, role: str) -> User:
    errors = {}
    if not username or not username.strip():
        errors["username"] = "Username is required"
    elif session.exec(select(User).where(User.username == username.strip())).first():
        errors["username"] = "Username already taken"
    if not password or len(password) < 6:
        errors["password"] = "Password must be at least 6 characters"
    if role not in ROLES:
        errors["role"] = "Role must be one of " + ", ".join(ROLES)
    if errors:
        raise ValidationError(errors=errors)
    user = User(username=username.strip(), password_hash=get_password_hash(password), role=role)
    session.add(user)
    session.flush()
    return user


def ensure_admin(username: Optional[str], password: Optional[str]):
    """Create the bootstrap admin account once, when a password is configured."""
    if not password:
        return
    username = username or "admin"
    with Session(engine) as session:
        if session.exec(select(User).where(User.username == username)).first():
            return
        session.add(User(username=username, password_hash=get_password_hash(password), role="admin"))
        session.commit()
    logger.info("created admin account %s", username)


def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    with Session(engine) as session:
        user = session.exec(select(User).where(User.username == username)).first()
        if user is None:
            raise credentials_exception
        return user


def require_role(role: str):
    def _role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role and current_user.role != "admin":
            raise HTTPException(status_code=403, detail="Insufficient privileges")
        return current_user

    return _role_checker


def require_any_role(*roles: str):
    def _checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role == "admin":
            return current_user
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient privileges")
        return current_user

    return _checker
