"""
Domain models for cubeview.

Defines the flat record schema aligned with `db/init.sql`. Used to validate
CSV rows before batched inserts and as the type returned by the sample data
generator.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Tuple

from pydantic import BaseModel, Field, field_validator

CSV_COLUMNS: Tuple[str, ...] = ("name", "value", "timestamp")


class Record(BaseModel):
    """
    Representation of a single row in the `records` table.
    """

    name: str = Field(..., min_length=1, description="Series label for the record.")
    value: Decimal = Field(..., description="Numeric value summed by the totalValue measure.")
    timestamp: datetime = Field(..., description="When the value was observed.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "str_strip_whitespace": True,
    }

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # TIMESTAMPTZ column; naive inputs are taken as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def as_row(self) -> Tuple[str, Decimal, datetime]:
        """Positional tuple in CSV_COLUMNS order."""
        return (self.name, self.value, self.timestamp)


__all__ = ["CSV_COLUMNS", "Record"]
