# Overview: Service-layer operations for auth; password hashing and credential checks.

"""
Authentication Service

Login only confirms a username/password pair against the users table.
There are no tokens, sessions or permissions behind it.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Inactive users cannot log in
"""

import logging

import bcrypt

from ..extensions import db
from ..models import User
from ..errors import ConflictError, ValidationError
from ..time_utils import utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

# Seeded by `flask system init` so a fresh install has working logins
DEFAULT_USERS = (
    {"username": "admin", "password": "password123", "name": "Administrator"},
    {"username": "user", "password": "password123", "name": "Normal User"},
)


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() compares in constant time. A malformed stored hash
    counts as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_user(username: str, password: str, name: str | None = None, *, rounds: int = 12) -> User:
    """
    Create a login account.

    Raises:
        ValidationError: blank username or weak password
        ConflictError: username already taken
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")

    existing = db.session.query(User).filter(User.username == username).first()
    if existing:
        raise ConflictError(f"Username already exists: {username}")

    user = User(
        username=username,
        name=name,
        password_hash=hash_password(password, rounds=rounds),
    )
    db.session.add(user)
    db.session.commit()

    logger.info("Created user %s", username)
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user:
        logger.info("Login failed for username %s: unknown user", username)
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        logger.info("User %s logged in", username)
        return user

    logger.info("Login failed for username %s: bad password", username)
    return None


def seed_default_users() -> list[str]:
    """Create the default accounts that don't exist yet; returns created usernames."""
    created = []
    for account in DEFAULT_USERS:
        exists = db.session.query(User.id).filter(User.username == account["username"]).first()
        if exists:
            continue
        create_user(account["username"], account["password"], account["name"])
        created.append(account["username"])
    return created
