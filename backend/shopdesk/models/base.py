from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import utcnow


def new_id() -> str:
    """Opaque record id assigned by the store on creation."""
    return uuid.uuid4().hex


class DocumentMixin:
    """Columns shared by every collection the entity store manages."""

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
