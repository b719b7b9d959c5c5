"""Compiled query plan produced from a ScanState."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from ..core.enums import ColumnType, ConditionType, EvaluationPeriod, Logic, SortDirection
from ..expression.bindings import SeriesBindings
from ..expression.nodes import Node, node_from_dict
from ..temporal.resolver import TemporalResolver


@dataclass(frozen=True)
class CompiledCondition:
    """A parsed predicate plus its temporal qualifier."""

    expression: Node
    condition_type: ConditionType
    period: EvaluationPeriod
    value: Optional[int] = None
    location: str = ""

    @property
    def is_static(self) -> bool:
        return self.condition_type is ConditionType.STATIC

    def evaluate(self, resolver: TemporalResolver, series: SeriesBindings, static: SeriesBindings) -> bool:
        bindings = static if self.is_static else series
        return resolver.verdict(self.expression, bindings, self.period, self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expression": str(self.expression),
            "condition_type": self.condition_type.value,
            "evaluation_period": self.period.value,
            "value": self.value,
            "tree": self.expression.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompiledCondition":
        return cls(
            expression=node_from_dict(data["tree"]),
            condition_type=ConditionType(data["condition_type"]),
            period=EvaluationPeriod(data["evaluation_period"]),
            value=data.get("value"),
        )


@dataclass(frozen=True)
class ConditionSet:
    """Conditions combined with AND/OR. An empty set admits everything."""

    logic: Logic = Logic.AND
    conditions: Tuple[CompiledCondition, ...] = ()

    def evaluate(self, resolver: TemporalResolver, series: SeriesBindings, static: SeriesBindings) -> bool:
        if not self.conditions:
            return True
        verdicts = (c.evaluate(resolver, series, static) for c in self.conditions)
        if self.logic is Logic.AND:
            return all(verdicts)
        return any(verdicts)

    def fields(self) -> Set[str]:
        return {f for c in self.conditions if not c.is_static for f in c.expression.fields()}

    def static_fields(self) -> Set[str]:
        return {f for c in self.conditions if c.is_static for f in c.expression.fields()}

    def functions(self) -> Set[str]:
        return {f for c in self.conditions for f in c.expression.functions()}

    def __len__(self) -> int:
        return len(self.conditions)

    def to_dict(self) -> Dict[str, Any]:
        return {"logic": self.logic.value, "conditions": [c.to_dict() for c in self.conditions]}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ConditionSet":
        if not data:
            return cls()
        return cls(
            logic=Logic(data.get("logic", Logic.AND.value)),
            conditions=tuple(CompiledCondition.from_dict(c) for c in data.get("conditions", [])),
        )


@dataclass(frozen=True)
class FieldProjection:
    """Direct read of a base or metadata field; never evaluated."""

    field: str


@dataclass(frozen=True)
class ExpressionProjection:
    """Formula evaluated at the current bar."""

    expression: Node


@dataclass(frozen=True)
class ConditionProjection:
    """Boolean combination of sub-conditions."""

    conditions: ConditionSet


Projection = Union[FieldProjection, ExpressionProjection, ConditionProjection]


@dataclass(frozen=True)
class CompiledColumn:
    id: str
    name: str
    type: ColumnType
    projection: Projection


@dataclass(frozen=True)
class CompiledSort:
    column_id: str
    direction: SortDirection


@dataclass
class ScanPlan:
    """Everything the executor and backends need for one scan."""

    market: str
    columns: Tuple[CompiledColumn, ...]
    admission: ConditionSet = field(default_factory=ConditionSet)
    sort: Tuple[CompiledSort, ...] = ()
    symbols: Optional[List[str]] = None
    limit: Optional[int] = None

    @property
    def column_ids(self) -> List[str]:
        return [c.id for c in self.columns]

    def column(self, column_id: str) -> CompiledColumn:
        for column in self.columns:
            if column.id == column_id:
                return column
        raise KeyError(column_id)

    def fields(self) -> Set[str]:
        """Series fields referenced by formulas."""
        result = set(self.admission.fields())
        for column in self.columns:
            projection = column.projection
            if isinstance(projection, ExpressionProjection):
                result |= projection.expression.fields()
            elif isinstance(projection, ConditionProjection):
                result |= projection.conditions.fields()
        return result

    def static_fields(self) -> Set[str]:
        """Metadata fields read by static columns and static conditions."""
        result = set(self.admission.static_fields())
        for column in self.columns:
            projection = column.projection
            if isinstance(projection, FieldProjection):
                result.add(projection.field)
            elif isinstance(projection, ConditionProjection):
                result |= projection.conditions.static_fields()
        return result

    def functions(self) -> Set[str]:
        result = set(self.admission.functions())
        for column in self.columns:
            projection = column.projection
            if isinstance(projection, ExpressionProjection):
                result |= projection.expression.functions()
            elif isinstance(projection, ConditionProjection):
                result |= projection.conditions.functions()
        return result
