# Overview: Service-layer operations for generated record codes; encapsulates sequence allocation.

"""
Record codes

    <PREFIX><YYYYMMDD><6-digit sequence><check digit>    e.g. SA20261018000042 + 7

- The sequence is global per document type and allocated atomically, so codes
  are unique even when two records are created in the same millisecond.
- The date is informational (creation day, UTC).
- The trailing digit is a Luhn check digit over all digits, letting callers
  reject mistyped codes without a database lookup.
"""

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import DocumentSequence
from petstore.time_utils import utcnow

DOCUMENT_PREFIXES = {
    "STOCK_IN": "SI",
    "SALE": "SA",
    "ITEM": "IT",
    "CUSTOMER": "CU",
}

SEQUENCE_WIDTH = 6


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def luhn_check_digit(digits: str) -> int:
    """Check digit that makes digits + check pass the Luhn mod-10 test."""
    total = 0
    # Rightmost payload digit is doubled once the check digit is appended
    for i, ch in enumerate(reversed(digits)):
        d = int(ch)
        if i % 2 == 0:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return (10 - total % 10) % 10


def format_document_code(prefix: str, number: int, *, on=None) -> str:
    day = (on or utcnow()).strftime("%Y%m%d")
    digits = f"{day}{number:0{SEQUENCE_WIDTH}d}"
    return f"{prefix}{digits}{luhn_check_digit(digits)}"


def validate_document_code(code: str) -> bool:
    """True when code has a known prefix and its check digit matches."""
    if not code or len(code) < 3:
        return False
    prefix, digits = code[:2], code[2:]
    if prefix not in DOCUMENT_PREFIXES.values() or not digits.isdigit():
        return False
    return luhn_check_digit(digits[:-1]) == int(digits[-1])


def next_sequence_number(document_type: str) -> int:
    """
    Allocate the next number for document_type inside the caller's transaction.

    The increment is a single UPDATE so concurrent writers serialize on the
    sequence row; the first allocation creates the row.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )
        return current - 1

    seq = DocumentSequence(document_type=document_type, next_number=2)
    db.session.add(seq)
    db.session.flush()
    return 1


def next_document_code(document_type: str) -> str:
    prefix = DOCUMENT_PREFIXES.get(document_type)
    if prefix is None:
        raise DocumentSequenceError(f"Unknown document type: {document_type}")
    return format_document_code(prefix, next_sequence_number(document_type))
