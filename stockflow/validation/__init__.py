"""Validation of uploaded inventory rows."""

from .record_validator import RecordValidator, RowRejection, ValidationReport

__all__ = ["RecordValidator", "RowRejection", "ValidationReport"]
