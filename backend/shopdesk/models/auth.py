from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .base import DocumentMixin

ROLE_ADMIN = "admin"
ROLE_SUB_ADMIN = "sub-admin"
ROLE_USER = "user"

ROLES = (ROLE_ADMIN, ROLE_SUB_ADMIN, ROLE_USER)

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"


class User(DocumentMixin, db.Model):
    """
    Back-office user.

    The role lives on the user record; the credential check itself is a
    plain bcrypt comparison (see services/auth_service.py).
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
    )

    email = db.Column(db.String(255), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(128), nullable=True)
    last_name = db.Column(db.String(128), nullable=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_USER, index=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE)

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Device(DocumentMixin, db.Model):
    """
    A signed-in device for a user.

    One device holds at most one live bearer token; the plaintext token is
    never stored, only its SHA-256 hash.
    """
    __tablename__ = "devices"

    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=True)
    browser = db.Column(db.String(255), nullable=True)
    os = db.Column(db.String(128), nullable=True)
    location = db.Column(db.String(128), nullable=True)

    token_hash = db.Column(db.String(64), nullable=True, unique=True, index=True)
    token_expires_at = db.Column(db.DateTime, nullable=True)
    last_active = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "browser": self.browser,
            "os": self.os,
            "location": self.location,
            "last_active": to_utc_z(self.last_active),
            "created_at": to_utc_z(self.created_at),
        }
