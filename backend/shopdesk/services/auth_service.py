# Overview: Service-layer operations for user accounts; bcrypt credentials, roles and account status.

"""
User Account Service

Uses bcrypt for password hashing and validates password strength. Roles are a
single field on the user (admin / sub-admin / user); there is no separate
permission table.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Bearer tokens are managed per device (see session_service.py)
- Deactivated users keep their record but cannot sign in
"""

import logging
import re

import bcrypt

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Device, User
from ..models.auth import ROLE_ADMIN, ROLE_SUB_ADMIN, ROLE_USER, ROLES, STATUS_ACTIVE, STATUS_INACTIVE

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt; strength is validated first."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed hash counts as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email address is required")
    return email


def get_user(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("users", user_id)
    return user


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=(email or "").strip().lower()).first()


def register_user(
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
    role: str = ROLE_USER,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationError: bad email, unknown role or weak password
        ConflictError: email already registered
    """
    email = _normalize_email(email)
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}. Must be one of {', '.join(ROLES)}")
    if get_user_by_email(email):
        raise ConflictError("A user with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=(first_name or "").strip() or None,
        last_name=(last_name or "").strip() or None,
        role=role,
        status=STATUS_ACTIVE,
    )
    db.session.add(user)
    db.session.commit()
    logger.info("Registered %s user %s", role, email)
    return user


def create_sub_admin(email: str, password: str, first_name: str | None = None,
                     last_name: str | None = None) -> User:
    return register_user(email, password, first_name, last_name, role=ROLE_SUB_ADMIN)


def get_users_by_role(role: str) -> list[User]:
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}. Must be one of {', '.join(ROLES)}")
    return db.session.query(User).filter_by(role=role).order_by(User.created_at.asc()).all()


def update_user_status(user_id: str, status: str) -> User:
    """
    Activate or deactivate a user.

    Deactivation also revokes every bearer token the user holds.
    """
    if status not in (STATUS_ACTIVE, STATUS_INACTIVE):
        raise ValidationError(f"Invalid status: {status}")
    user = get_user(user_id)
    user.status = status
    if status == STATUS_INACTIVE:
        db.session.query(Device).filter_by(user_id=user.id).update(
            {"token_hash": None, "token_expires_at": None}, synchronize_session=False
        )
    db.session.commit()
    logger.info("User %s is now %s", user.email, status)
    return user


def update_user_email(user_id: str, email: str) -> User:
    email = _normalize_email(email)
    user = get_user(user_id)
    existing = get_user_by_email(email)
    if existing and existing.id != user.id:
        raise ConflictError("A user with this email already exists")
    user.email = email
    db.session.commit()
    return user


def reset_user_password(user_id: str, new_password: str) -> User:
    user = get_user(user_id)
    user.password_hash = hash_password(new_password)
    db.session.query(Device).filter_by(user_id=user.id).update(
        {"token_hash": None, "token_expires_at": None}, synchronize_session=False
    )
    db.session.commit()
    return user


def delete_user(user_id: str) -> None:
    """Remove the user and all of its devices. The last admin cannot be removed."""
    user = get_user(user_id)
    if user.role == ROLE_ADMIN:
        admins = db.session.query(User).filter_by(role=ROLE_ADMIN).count()
        if admins <= 1:
            raise ConflictError("Cannot delete the last admin user")
    db.session.query(Device).filter_by(user_id=user.id).delete(synchronize_session=False)
    db.session.delete(user)
    db.session.commit()
    logger.info("Deleted user %s", user_id)


def ensure_admin_user(email: str, password: str) -> tuple[User, bool]:
    """
    Idempotent admin bootstrap.

    Returns (user, created). An existing account with this email is promoted
    to admin and reactivated; its password is left alone.
    """
    existing = get_user_by_email(email)
    if existing:
        changed = False
        if existing.role != ROLE_ADMIN:
            existing.role = ROLE_ADMIN
            changed = True
        if existing.status != STATUS_ACTIVE:
            existing.status = STATUS_ACTIVE
            changed = True
        if changed:
            db.session.commit()
        return existing, False
    return register_user(email, password, "Admin", "User", role=ROLE_ADMIN), True
