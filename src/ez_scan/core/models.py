"""Core data models for the scan engine."""

import hashlib
import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from .enums import ColumnType, ConditionType, EvaluationPeriod, Logic, SortDirection


def slugify(name: str) -> str:
    """Derive a stable column id from a display name."""
    slug = re.sub(r"[^a-z0-9]+", "_", name.lower())
    return slug.strip("_")


class FilterCondition(BaseModel):
    """A predicate with a temporal qualifier."""

    expression: str = Field(description="Formula or static-field predicate")
    condition_type: ConditionType = Field(default=ConditionType.COMPUTED, description="static or computed")
    evaluation_period: EvaluationPeriod = Field(default=EvaluationPeriod.NOW, description="Temporal qualifier")
    value: Optional[int] = Field(default=None, description="Bar count for within_last / x_bar_ago")


class ColumnConfig(BaseModel):
    """A named output column in a scan result.

    Only field types are validated here. Whether the populated fields match
    ``type`` is checked by the compiler so the error can name the column.
    """

    id: str = Field(description="Stable column identifier (slug)")
    name: str = Field(description="Display label")
    type: ColumnType = Field(description="static, computed or condition")

    property_name: Optional[str] = Field(default=None, description="Base field for static columns")
    expression: Optional[str] = Field(default=None, description="Formula for computed columns")
    logic: Optional[Logic] = Field(default=None, description="Combinator for condition columns")
    conditions: Optional[List[FilterCondition]] = Field(default=None, description="Sub-conditions for condition columns")

    @classmethod
    def from_name(cls, name: str, type: ColumnType, **fields: Any) -> "ColumnConfig":
        """Build a column whose id is derived from its display name."""
        return cls(id=slugify(name), name=name, type=type, **fields)


class SortColumn(BaseModel):
    """One sort rule; ``column`` matches a column id or display name."""

    column: str
    direction: SortDirection = SortDirection.ASC


class ScanState(BaseModel):
    """Full specification of one scan execution."""

    model_config = ConfigDict(frozen=True)

    market: str = Field(default="india", description="Instrument universe selector")
    columns: List[ColumnConfig] = Field(default_factory=list, description="Output columns in display order")
    conditions: List[FilterCondition] = Field(default_factory=list, description="Row admission conditions")
    logic: Logic = Field(default=Logic.AND, description="Combinator for conditions")
    sort_columns: List[SortColumn] = Field(default_factory=list, description="Ordered sort rules")

    symbols: Optional[List[str]] = Field(default=None, description="Restrict the universe to these tickers")
    limit: Optional[int] = Field(default=None, ge=1, description="Maximum rows after sorting")

    def cache_key(self) -> str:
        """Deterministic key for identical configurations."""
        raw = json.dumps(self.model_dump(mode="json"), sort_keys=True)
        return hashlib.sha256(raw.encode()).hexdigest()[:24]


class ResultColumn(BaseModel):
    """Column header of a scan result."""

    id: str
    name: str
    type: ColumnType


class ScanRow(BaseModel):
    """One instrument's values, keyed by column id in configured order."""

    ticker: str
    values: Dict[str, Any] = Field(default_factory=dict)


class ScanResult(BaseModel):
    """Output of one scan execution."""

    market: str
    columns: List[ResultColumn] = Field(default_factory=list)
    rows: List[ScanRow] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=datetime.now)

    @property
    def column_ids(self) -> List[str]:
        return [c.id for c in self.columns]

    @property
    def tickers(self) -> List[str]:
        return [r.ticker for r in self.rows]

    def __len__(self) -> int:
        return len(self.rows)

    def to_frame(self, decimals: Optional[int] = None) -> pd.DataFrame:
        """Tabular view for display; rounding happens only here."""
        frame = pd.DataFrame(
            [row.values for row in self.rows],
            index=pd.Index(self.tickers, name="ticker"),
            columns=self.column_ids,
        )
        if decimals is not None:
            frame = frame.round(decimals)
        return frame
