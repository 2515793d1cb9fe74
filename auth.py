"""
Identity: signup, login and session tokens.

Tokens are stateless HS256 JWTs carrying {"user": {"id": <user id>}}; nothing
about a session is stored server-side.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import Settings
from database import create_document
from errors import DuplicateUser, InvalidCredentials, InvalidToken, MissingToken, UserNotFound
from schemas import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_token(settings: Settings, user_id: str) -> str:
    to_encode = {"user": {"id": user_id}}
    if settings.jwt_expire_minutes:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
        to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def authenticate(settings: Settings, token: Optional[str]) -> str:
    """Return the user id embedded in a session token."""
    if not token:
        raise MissingToken("Please authenticate using valid login")
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise InvalidToken("Please authenticate using a valid token")
    user = payload.get("user")
    if not isinstance(user, dict) or not user.get("id"):
        raise InvalidToken("Please authenticate using a valid token")
    return str(user["id"])


def signup(db: Database, settings: Settings, name: str, email: str, password: str) -> str:
    email = normalize_email(email)
    if db["user"].find_one({"email": email}):
        raise DuplicateUser("Existing user found with same email address")
    user = User(name=name, email=email, password_hash=hash_password(password))
    try:
        user_id = create_document(db, "user", user)
    except DuplicateKeyError:
        # lost a race with a concurrent signup for the same address
        raise DuplicateUser("Existing user found with same email address")
    logger.info("New user signed up: %s", email)
    return create_token(settings, user_id)


def login(db: Database, settings: Settings, email: str, password: str) -> str:
    email = normalize_email(email)
    user = db["user"].find_one({"email": email})
    if not user:
        raise UserNotFound("Wrong Email address")
    if not verify_password(password, user.get("password_hash", "")):
        logger.info("Rejected login for %s", email)
        raise InvalidCredentials("Wrong Password")
    return create_token(settings, str(user["_id"]))
