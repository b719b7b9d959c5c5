"""Temporal qualifier resolution: turn per-bar results into one verdict."""

import logging
from typing import Optional, Union

from ..core.enums import EvaluationPeriod
from ..core.errors import InvalidRangeError
from ..expression.bindings import SeriesBindings
from ..expression.evaluator import Evaluator, Value, truthy
from ..expression.nodes import Node

logger = logging.getLogger(__name__)


def check_range(period: EvaluationPeriod, value: Optional[int]) -> None:
    """Validate the bar count for *period*; raises ``InvalidRangeError``."""
    if period is EvaluationPeriod.NOW:
        return
    if value is None:
        raise InvalidRangeError(f"{period.value} requires a bar count")
    if period is EvaluationPeriod.WITHIN_LAST and value <= 0:
        raise InvalidRangeError(f"within_last requires a positive bar count, got {value}")
    if period is EvaluationPeriod.X_BAR_AGO and value < 0:
        raise InvalidRangeError(f"x_bar_ago requires a non-negative bar count, got {value}")


class TemporalResolver:
    """Applies ``now`` / ``x_bar_ago`` / ``within_last`` to an expression."""

    def __init__(self, evaluator: Optional[Evaluator] = None):
        self.evaluator = evaluator or Evaluator()

    def resolve(
        self,
        expression: Union[str, Node],
        bindings: SeriesBindings,
        period: EvaluationPeriod = EvaluationPeriod.NOW,
        value: Optional[int] = None,
    ) -> Value:
        """Single value for *expression* under the qualifier.

        ``now`` and ``x_bar_ago`` return the value at one bar unchanged.
        ``within_last`` returns True if the expression held on any of the
        last ``value`` bars; NaN bars count as not satisfied.
        """
        period = EvaluationPeriod(period)
        check_range(period, value)

        if period is EvaluationPeriod.NOW:
            return self.evaluator.evaluate(expression, bindings, 0)

        if period is EvaluationPeriod.X_BAR_AGO:
            return self.evaluator.evaluate(expression, bindings, value)

        for offset in range(value):
            if truthy(self.evaluator.evaluate(expression, bindings, offset)):
                logger.debug(f"within_last({value}) satisfied at offset {offset}")
                return True
        return False

    def verdict(
        self,
        expression: Union[str, Node],
        bindings: SeriesBindings,
        period: EvaluationPeriod = EvaluationPeriod.NOW,
        value: Optional[int] = None,
    ) -> bool:
        """Boolean reading of ``resolve``; NaN is never satisfied."""
        return truthy(self.resolve(expression, bindings, period, value))
