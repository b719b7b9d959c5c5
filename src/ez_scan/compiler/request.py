"""Backend projection request built from a ScanPlan."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.enums import ColumnType, SortDirection
from .compiler import ADMISSION_KEY
from .plan import ConditionProjection, ExpressionProjection, FieldProjection, ScanPlan


class ColumnSpec(BaseModel):
    """One projected output column."""

    key: str = Field(description="Column id; echoed back in the response header")
    type: ColumnType
    field: Optional[str] = Field(default=None, description="Field read by static columns")
    expression: Optional[str] = Field(default=None, description="Canonical formula text")
    tree: Optional[Dict[str, Any]] = Field(default=None, description="Formula AST")
    predicate: Optional[Dict[str, Any]] = Field(default=None, description="Condition tree for condition columns")


class SortSpec(BaseModel):
    column: str
    direction: SortDirection


class ScanRequest(BaseModel):
    """What an evaluation backend is asked to compute.

    The backend returns one row per admitted instrument with the values of
    ``columns`` (in any stable order it names in its header) and, unless it
    filtered rows itself, a boolean ``admission_key`` column.
    """

    market: str
    symbols: Optional[List[str]] = None
    fields: List[str] = Field(default_factory=list, description="Series fields referenced by formulas")
    static_fields: List[str] = Field(default_factory=list, description="Metadata fields read directly")
    functions: List[str] = Field(default_factory=list, description="Function names used by formulas")
    columns: List[ColumnSpec] = Field(default_factory=list)
    filter: Dict[str, Any] = Field(default_factory=dict, description="Admission predicate tree")
    sort: List[SortSpec] = Field(default_factory=list)
    limit: Optional[int] = None
    admission_key: str = ADMISSION_KEY


def build_request(plan: ScanPlan) -> ScanRequest:
    """Translate a compiled plan into the backend-consumable request."""
    specs = []
    for column in plan.columns:
        projection = column.projection
        spec = ColumnSpec(key=column.id, type=column.type)
        if isinstance(projection, FieldProjection):
            spec.field = projection.field
        elif isinstance(projection, ExpressionProjection):
            spec.expression = str(projection.expression)
            spec.tree = projection.expression.to_dict()
        elif isinstance(projection, ConditionProjection):
            spec.predicate = projection.conditions.to_dict()
        specs.append(spec)

    return ScanRequest(
        market=plan.market,
        symbols=plan.symbols,
        fields=sorted(plan.fields()),
        static_fields=sorted(plan.static_fields()),
        functions=sorted(plan.functions()),
        columns=specs,
        filter=plan.admission.to_dict(),
        sort=[SortSpec(column=s.column_id, direction=s.direction) for s in plan.sort],
        limit=plan.limit,
    )
