# Overview: Service-layer operations for user accounts; password hashing, creation and login.

"""
Authentication Service

Every write in the back office is attributable to a user. Passwords are
hashed with bcrypt (cost factor 12) and must pass a strength check before
they are hashed. Session tokens are handled in session_service.py.
"""

import logging
import re

import bcrypt

from ..extensions import db
from ..models import ROLES, User
from ..validation import ConflictError, NotFoundError, ValidationError
from margarita.time_utils import utcnow

logger = logging.getLogger(__name__)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter and one digit
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe; a malformed stored hash never matches."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _role(role: str) -> str:
    if not isinstance(role, str) or role.strip().upper() not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    return role.strip().upper()


def create_user(username: str, password: str, role: str = "USER") -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationError: blank username, weak password or unknown role
        ConflictError: username already taken
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64")

    if db.session.query(User.id).filter(User.username == username).first():
        raise ConflictError(f"Username '{username}' already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=_role(role),
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    logger.info("User created with id: %s role=%s", user.id, user.role)
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


def list_users(include_inactive: bool = False) -> list[User]:
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.username.asc()).all()


def update_user(user_id: int, *, role: str | None = None, is_active: bool | None = None, password: str | None = None) -> User:
    user = get_user(user_id)
    if role is not None:
        user.role = _role(role)
    if is_active is not None:
        if not isinstance(is_active, bool):
            raise ValidationError("is_active must be a boolean")
        user.is_active = is_active
    if password is not None:
        user.password_hash = hash_password(password)
    db.session.commit()
    logger.info("User %s updated", user.id)
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Returns the User when credentials are valid and the account is active,
    None otherwise. Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.username == (username or "").strip(),
        User.is_active.is_(True),
    ).first()

    if not user or not isinstance(password, str):
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    logger.warning("Failed login for username %s", user.username)
    return None
