# Overview: Service-layer operations for sign-in; device limits and device-bound bearer tokens.

"""
Device Session Service

Each sign-in is tied to a device record. A user may hold at most
MAX_DEVICES_PER_USER devices; signing in from a new device beyond that is
refused with the current device list so the user can remove one.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (SESSION_TTL_HOURS)
- Revoked on logout, deactivation and password reset
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app, has_app_context

from ..errors import AuthenticationError, DeviceLimitError, NotFoundError
from ..extensions import db
from ..models import Device, User
from ..time_utils import utcnow
from .auth_service import get_user_by_email, verify_password

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEVICES = 2
DEFAULT_SESSION_TTL_HOURS = 24

DEVICE_FIELDS = ("name", "browser", "os", "location")


@dataclass
class SessionContext:
    """Who is calling, and from which device."""
    user: User
    device: Device


@dataclass
class LoginResult:
    user: User
    device: Device
    token: str


def _setting(key: str, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy); only the client ever sees it."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is sufficient for high-entropy tokens; bcrypt is for passwords."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def get_user_devices(user_id: str) -> list[Device]:
    """Most recently active first."""
    return (
        db.session.query(Device)
        .filter_by(user_id=user_id)
        .order_by(Device.last_active.desc())
        .all()
    )


def remove_user_device(user_id: str, device_id: str) -> None:
    device = db.session.query(Device).filter_by(id=device_id, user_id=user_id).first()
    if not device:
        raise NotFoundError("devices", device_id)
    db.session.delete(device)
    db.session.commit()
    logger.info("Removed device %s for user %s", device_id, user_id)


def login(email: str, password: str, device_info: dict | None = None,
          device_token: str | None = None) -> LoginResult:
    """
    Check credentials, enforce the device limit and issue a bearer token.

    device_token is the device id returned by a previous login on the same
    device. A known device is refreshed and does not count against the limit.

    Raises:
        AuthenticationError: wrong email/password, or account deactivated
        DeviceLimitError: new device while the user already has the maximum
    """
    user = get_user_by_email(email)
    if not user or not verify_password(password or "", user.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError(
            "Your account has been deactivated. Please contact an administrator."
        )

    info = {k: (device_info or {}).get(k) for k in DEVICE_FIELDS}
    devices = get_user_devices(user.id)
    device = next((d for d in devices if device_token and d.id == device_token), None)

    if device is None:
        limit = int(_setting("MAX_DEVICES_PER_USER", DEFAULT_MAX_DEVICES))
        if len(devices) >= limit:
            logger.warning("Device limit reached for %s (%d devices)", user.email, len(devices))
            raise DeviceLimitError([d.to_dict() for d in devices], limit)
        device = Device(user_id=user.id, **info)
        db.session.add(device)
    else:
        for key, value in info.items():
            if value:
                setattr(device, key, value)

    token = generate_token()
    now = utcnow()
    device.token_hash = hash_token(token)
    device.token_expires_at = now + timedelta(hours=int(_setting("SESSION_TTL_HOURS", DEFAULT_SESSION_TTL_HOURS)))
    device.last_active = now
    db.session.commit()

    logger.info("User %s signed in on device %s", user.email, device.id)
    return LoginResult(user=user, device=device, token=token)


def validate_token(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its user and device.

    Returns None for unknown or expired tokens and for deactivated users.
    Updates the device's last_active on success.
    """
    if not token:
        return None
    device = db.session.query(Device).filter_by(token_hash=hash_token(token)).first()
    if not device:
        return None

    now = utcnow()
    if device.token_expires_at and device.token_expires_at < now:
        device.token_hash = None
        device.token_expires_at = None
        db.session.commit()
        return None

    user = db.session.get(User, device.user_id)
    if not user or not user.is_active:
        return None

    device.last_active = now
    db.session.commit()
    return SessionContext(user=user, device=device)


def logout(token: str) -> bool:
    """
    Revoke the token. The device stays registered.

    Returns True if a session was revoked, False if not found.
    """
    if not token:
        return False
    device = db.session.query(Device).filter_by(token_hash=hash_token(token)).first()
    if not device:
        return False
    device.token_hash = None
    device.token_expires_at = None
    db.session.commit()
    return True

