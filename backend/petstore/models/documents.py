from __future__ import annotations

from ..extensions import db


class DocumentSequence(db.Model):
    """
    Monotonic counter per document type, backing generated record codes.

    Rows are bumped with a single UPDATE ... SET next_number = next_number + 1
    so two writers can never receive the same number.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_document_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<DocumentSequence type={self.document_type!r} next={self.next_number}>"
