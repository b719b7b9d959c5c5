"""Compiles a ScanState into a ScanPlan."""

import logging
from typing import Iterable, List, Optional, Sequence

from ..core.enums import ColumnType, ConditionType, EvaluationPeriod, Logic
from ..core.errors import (
    CompilationError, DuplicateColumnError, MalformedColumnError,
    MalformedConditionError, MalformedSortError
)
from ..core.models import ColumnConfig, FilterCondition, ScanState, SortColumn
from ..expression.functions import FunctionRegistry, create_default_registry
from ..expression.nodes import Node
from ..expression.parser import Parser
from ..expression.symbols import SymbolTable
from ..temporal.resolver import check_range
from .plan import (
    CompiledColumn, CompiledCondition, CompiledSort, ConditionProjection,
    ConditionSet, ExpressionProjection, FieldProjection, ScanPlan
)

logger = logging.getLogger(__name__)

ADMISSION_KEY = "_match"
TICKER_KEY = "ticker"
RESERVED_IDS = {ADMISSION_KEY, TICKER_KEY}


class ScanCompiler:
    """Validates user configuration and builds the query plan.

    All checks run here, before any backend is contacted. Errors carry the
    column id or condition path they were found at.
    """

    def __init__(
        self,
        symbols: Optional[SymbolTable] = None,
        functions: Optional[FunctionRegistry] = None,
        static_fields: Optional[Iterable[str]] = None,
        strict_sort: bool = False,
    ):
        self.symbols = symbols or SymbolTable()
        self.strict_sort = strict_sort
        self.functions = functions or create_default_registry()
        self.parser = Parser(self.symbols, self.functions)
        if static_fields is not None:
            static_symbols = SymbolTable.for_fields(static_fields)
        else:
            static_symbols = SymbolTable({}, allow_any=True)
        self.static_parser = Parser(static_symbols, self.functions)

    def compile(self, state: ScanState) -> ScanPlan:
        self._check_duplicates(state.columns)
        columns = tuple(self.compile_column(c) for c in state.columns)
        admission = self.compile_conditions(state.conditions, state.logic, prefix="conditions")
        sort = tuple(self._compile_sorts(state.sort_columns, state.columns))

        plan = ScanPlan(
            market=state.market,
            columns=columns,
            admission=admission,
            sort=sort,
            symbols=list(state.symbols) if state.symbols is not None else None,
            limit=state.limit,
        )
        logger.debug(
            f"Compiled scan for {state.market}: {len(columns)} columns, "
            f"{len(admission)} conditions, fields={sorted(plan.fields())}"
        )
        return plan

    def compile_column(self, column: ColumnConfig) -> CompiledColumn:
        if not column.id or column.id in RESERVED_IDS:
            raise MalformedColumnError(column.id, f"invalid column id '{column.id}'")

        if column.type is ColumnType.STATIC:
            self._require(column, property_name=True)
            projection = FieldProjection(column.property_name)
        elif column.type is ColumnType.COMPUTED:
            self._require(column, expression=True)
            node = self._parse(column.expression, self.parser, f"column '{column.id}'")
            projection = ExpressionProjection(node)
        else:
            self._require(column, conditions=True)
            conditions = self.compile_conditions(
                column.conditions, column.logic, prefix=f"column '{column.id}' conditions"
            )
            projection = ConditionProjection(conditions)

        return CompiledColumn(id=column.id, name=column.name, type=column.type, projection=projection)

    def compile_conditions(
        self,
        conditions: Sequence[FilterCondition],
        logic: Logic,
        prefix: str,
    ) -> ConditionSet:
        compiled = [
            self.compile_condition(condition, f"{prefix}[{index}]")
            for index, condition in enumerate(conditions)
        ]
        return ConditionSet(logic=Logic(logic), conditions=tuple(compiled))

    def compile_condition(self, condition: FilterCondition, location: str) -> CompiledCondition:
        period = condition.evaluation_period
        if period is EvaluationPeriod.NOW and condition.value is not None:
            raise MalformedConditionError("value must be omitted when evaluation_period is 'now'", location)
        if condition.condition_type is ConditionType.STATIC and period is not EvaluationPeriod.NOW:
            raise MalformedConditionError("static conditions only support evaluation_period 'now'", location)
        try:
            check_range(period, condition.value)
        except CompilationError as e:
            e.at(location)
            raise

        parser = self.static_parser if condition.condition_type is ConditionType.STATIC else self.parser
        node = self._parse(condition.expression, parser, location)
        return CompiledCondition(
            expression=node,
            condition_type=condition.condition_type,
            period=period,
            value=condition.value,
            location=location,
        )

    def _parse(self, formula: str, parser: Parser, location: str) -> Node:
        try:
            return parser.parse(formula)
        except CompilationError as e:
            logger.warning(f"Failed to compile {location}: {e.message}")
            e.at(location)
            raise

    @staticmethod
    def _require(
        column: ColumnConfig,
        property_name: bool = False,
        expression: bool = False,
        conditions: bool = False,
    ) -> None:
        """Check that exactly the fields matching the column type are set."""
        has_property = bool(column.property_name)
        has_expression = bool(column.expression and column.expression.strip())
        has_conditions = column.logic is not None and bool(column.conditions)
        has_any_condition_field = column.logic is not None or column.conditions is not None

        kind = column.type.value
        if property_name and not has_property:
            raise MalformedColumnError(column.id, f"{kind} column requires property_name")
        if expression and not has_expression:
            raise MalformedColumnError(column.id, f"{kind} column requires expression")
        if conditions and not has_conditions:
            raise MalformedColumnError(column.id, f"{kind} column requires logic and at least one condition")
        if not property_name and column.property_name is not None:
            raise MalformedColumnError(column.id, f"{kind} column must not set property_name")
        if not expression and column.expression is not None:
            raise MalformedColumnError(column.id, f"{kind} column must not set expression")
        if not conditions and has_any_condition_field:
            raise MalformedColumnError(column.id, f"{kind} column must not set logic or conditions")

    @staticmethod
    def _check_duplicates(columns: Sequence[ColumnConfig]) -> None:
        seen = set()
        for column in columns:
            if column.id in seen:
                raise DuplicateColumnError(column.id)
            seen.add(column.id)

    def _compile_sorts(self, rules: Sequence[SortColumn], columns: List[ColumnConfig]) -> List[CompiledSort]:
        """Resolve sort rules; rules naming no configured column are dropped.

        A sort rule can outlive the column it pointed at (the column was
        removed, or a saved default sorts by a column the user never added).
        With ``strict_sort`` such rules raise ``MalformedSortError`` instead.
        """
        compiled = []
        for rule in rules:
            sort = self._compile_sort(rule, columns)
            if sort is not None:
                compiled.append(sort)
            elif self.strict_sort:
                raise MalformedSortError(rule.column)
            else:
                logger.warning(f"Ignoring sort on unknown column '{rule.column}'")
        return compiled

    @staticmethod
    def _compile_sort(rule: SortColumn, columns: List[ColumnConfig]) -> Optional[CompiledSort]:
        """Resolve a sort rule by column id first, then by display name."""
        if rule.column == TICKER_KEY:
            return CompiledSort(TICKER_KEY, rule.direction)
        for column in columns:
            if column.id == rule.column:
                return CompiledSort(column.id, rule.direction)
        for column in columns:
            if column.name == rule.column:
                return CompiledSort(column.id, rule.direction)
        return None
