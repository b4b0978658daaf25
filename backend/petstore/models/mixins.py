from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from petstore.time_utils import utcnow


def decimal_to_float(value: Decimal | None) -> float | None:
    """JSON-friendly rendering of Numeric columns."""
    if value is None:
        return None
    return float(value)


class SoftDeleteMixin:
    """
    Explicit soft delete: rows are hidden by a deleted_at timestamp.

    Read paths must go through live_query() (or filter deleted_at themselves);
    nothing filters implicitly.
    """
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()

    @classmethod
    def live_query(cls):
        return db.session.query(cls).filter(cls.deleted_at.is_(None))
