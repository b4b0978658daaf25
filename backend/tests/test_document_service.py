"""Generated record codes: format, check digit and uniqueness."""

from datetime import datetime

import pytest

from petstore.services.concurrency import transaction_scope
from petstore.services.document_service import (
    DocumentSequenceError,
    format_document_code,
    luhn_check_digit,
    next_document_code,
    next_sequence_number,
    validate_document_code,
)


def test_luhn_check_digit_known_value():
    assert luhn_check_digit("7992739871") == 3


def test_format_document_code_layout():
    code = format_document_code("SA", 42, on=datetime(2026, 10, 18))
    assert code[:16] == "SA20261018000042"
    assert len(code) == 17
    assert validate_document_code(code)


def test_validate_rejects_mistyped_code():
    code = format_document_code("IT", 7, on=datetime(2026, 1, 2))
    wrong_digit = (int(code[-1]) + 1) % 10
    assert not validate_document_code(code[:-1] + str(wrong_digit))
    assert not validate_document_code("XX202601020000071")
    assert not validate_document_code("")


def test_sequence_is_per_document_type(app):
    with transaction_scope():
        assert next_sequence_number("SALE") == 1
        assert next_sequence_number("SALE") == 2
        assert next_sequence_number("STOCK_IN") == 1
        assert next_sequence_number("SALE") == 3


def test_generated_codes_are_unique_and_valid(app):
    with transaction_scope():
        codes = [next_document_code("CUSTOMER") for _ in range(25)]
    assert len(set(codes)) == 25
    assert all(c.startswith("CU") and validate_document_code(c) for c in codes)


def test_unknown_document_type(app):
    with pytest.raises(DocumentSequenceError):
        next_document_code("INVOICE")
