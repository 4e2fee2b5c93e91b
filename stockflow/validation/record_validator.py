"""Record validation for uploaded inventory data.

This module performs the pre-flight checks on raw tabular rows before they
reach the EOQ engine. Well-formed rows become InventoryRecords; every other
row is rejected with per-field reasons. Nothing is coerced: a negative demand
is rejected, never clamped to zero, and a numeric string is rejected, never
parsed.

Partial success model:
    Raw rows → RecordValidator → (valid records, rejected rows with reasons)
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from stockflow.constants import ID_FIELDS, REQUIRED_FIELDS
from stockflow.models.inventory import InventoryRecord

logger = logging.getLogger(__name__)


@dataclass
class RowRejection:
    """A rejected input row.

    Attributes:
        row_index: Position of the row in the input sequence
        row: The row as received
        reasons: field name → reason the field was rejected
    """
    row_index: int
    row: Dict[str, Any]
    reasons: Dict[str, str] = field(default_factory=dict)

    @property
    def fields(self) -> List[str]:
        return list(self.reasons)

    def __str__(self) -> str:
        details = "; ".join(f"{name}: {reason}" for name, reason in self.reasons.items())
        return f"Row {self.row_index} rejected ({details})"


@dataclass
class ValidationReport:
    """Outcome of validating a batch of rows.

    Attributes:
        records: Validated records, in input order
        rejections: Rejected rows, in input order
    """
    records: List[InventoryRecord] = field(default_factory=list)
    rejections: List[RowRejection] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.records) + len(self.rejections)

    @property
    def is_clean(self) -> bool:
        return not self.rejections

    def records_frame(self) -> pd.DataFrame:
        """Valid records as a DataFrame (one column per record field)."""
        return pd.DataFrame(
            [r.model_dump() for r in self.records],
            columns=list(REQUIRED_FIELDS),
        )

    def rejections_frame(self) -> pd.DataFrame:
        """Rejections as a DataFrame with one row per rejected field."""
        rows = [
            {'row_index': rej.row_index, 'field': name, 'reason': reason}
            for rej in self.rejections
            for name, reason in rej.reasons.items()
        ]
        return pd.DataFrame(rows, columns=['row_index', 'field', 'reason'])


class RecordValidator:
    """Validates raw inventory rows.

    A row is rejected if any required field is missing, if a numeric field is
    not a finite number, or if:
    - demand < 0
    - order_cost <= 0
    - holding_cost <= 0 (the EOQ divisor)
    - inventory_level < 0

    Example:
        validator = RecordValidator()
        report = validator.validate(rows)
        for rejection in report.rejections:
            print(rejection)
    """

    #: field → (lower bound, bound is exclusive)
    BOUNDS: Dict[str, Tuple[float, bool]] = {
        'demand': (0.0, False),
        'order_cost': (0.0, True),
        'holding_cost': (0.0, True),
        'inventory_level': (0.0, False),
    }

    def validate(self, rows: Iterable[Mapping[str, Any]]) -> ValidationReport:
        """Validate a sequence of rows.

        Args:
            rows: Ordered raw rows (mappings of column name → value)

        Returns:
            ValidationReport with valid records and rejections, both in input order
        """
        report = ValidationReport()

        for index, row in enumerate(rows):
            record, rejection = self.validate_row(index, row)
            if record is not None:
                report.records.append(record)
            else:
                report.rejections.append(rejection)

        if report.rejections:
            logger.warning(
                f"Rejected {len(report.rejections)} of {report.total_rows} rows "
                f"(first: {report.rejections[0]})"
            )
        logger.info(f"Validated {len(report.records)} inventory records")
        return report

    def validate_dataframe(self, frame: pd.DataFrame) -> ValidationReport:
        """Validate the rows of a DataFrame.

        NaN cells are treated as missing values.
        """
        return self.validate(frame.to_dict(orient='records'))

    def validate_row(
        self, index: int, row: Any
    ) -> Tuple[Optional[InventoryRecord], Optional[RowRejection]]:
        """Validate a single row.

        Returns:
            (record, None) if the row is valid, otherwise (None, rejection)
        """
        if not isinstance(row, Mapping):
            return None, RowRejection(
                row_index=index,
                row={'value': row},
                reasons={'row': f"expected a mapping of fields, got {type(row).__name__}"},
            )

        reasons: Dict[str, str] = {}
        values: Dict[str, Any] = {}

        for name in REQUIRED_FIELDS:
            value = row.get(name)
            if _is_missing(value):
                reasons[name] = "missing required field"
                continue

            if name in ID_FIELDS:
                reason = self._check_identifier(value)
            else:
                reason = self._check_numeric(name, value)
                value = float(value) if reason is None else value

            if reason is not None:
                reasons[name] = reason
            else:
                values[name] = value

        if reasons:
            return None, RowRejection(row_index=index, row=dict(row), reasons=reasons)

        try:
            record = InventoryRecord(**values)
        except ValidationError as e:
            for error in e.errors():
                name = str(error['loc'][0]) if error['loc'] else 'row'
                reasons[name] = error['msg']
            return None, RowRejection(row_index=index, row=dict(row), reasons=reasons)

        return record, None

    def _check_identifier(self, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return f"must be a string identifier, got {type(value).__name__}"
        if not value.strip():
            return "must not be blank"
        return None

    def _check_numeric(self, name: str, value: Any) -> Optional[str]:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            return f"must be numeric, got {type(value).__name__}"
        if not math.isfinite(value):
            return f"must be finite, got {value}"

        lower, exclusive = self.BOUNDS[name]
        if exclusive and value <= lower:
            return f"must be > {lower:g}, got {value:g}"
        if not exclusive and value < lower:
            return f"must be >= {lower:g}, got {value:g}"
        return None


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False

