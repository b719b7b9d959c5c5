"""Unit tests for temporal qualifier resolution."""

import math

import pytest

from ez_scan.core.enums import EvaluationPeriod
from ez_scan.core.errors import InvalidRangeError
from ez_scan.expression.bindings import SeriesBindings
from ez_scan.temporal.resolver import check_range


def _volume_spike(offset, bars=25, base=1000.0, spike=5000.0):
    """Volumes (latest first) with a single spike at *offset*."""
    volumes = [base] * bars
    volumes[offset] = spike
    return SeriesBindings.from_sequences({"volume": volumes})


class TestTemporalResolver:
    def test_within_last_finds_older_bar(self, resolver):
        bindings = _volume_spike(2)
        formula = "v > sma(v,20)"
        assert resolver.verdict(formula, bindings, EvaluationPeriod.NOW) is False
        assert resolver.verdict(formula, bindings, EvaluationPeriod.X_BAR_AGO, 1) is False
        assert resolver.verdict(formula, bindings, EvaluationPeriod.X_BAR_AGO, 2) is True
        assert resolver.verdict(formula, bindings, EvaluationPeriod.WITHIN_LAST, 3) is True
        assert resolver.verdict(formula, bindings, EvaluationPeriod.WITHIN_LAST, 2) is False

    def test_x_bar_ago_past_history_is_false(self, resolver):
        bindings = SeriesBindings.from_sequences({"close": [101.0, 102.0, 103.0]})
        assert resolver.verdict("c > 100", bindings, EvaluationPeriod.X_BAR_AGO, 5) is False
        assert math.isnan(resolver.resolve("c", bindings, EvaluationPeriod.X_BAR_AGO, 5))

    def test_x_bar_ago_zero_equals_now(self, resolver):
        bindings = SeriesBindings.from_sequences({"close": [3.0, 1.0, 2.0]})
        for formula in ["c > prv(c)", "c - prv(c)", "sma(c,2)"]:
            now = resolver.resolve(formula, bindings, EvaluationPeriod.NOW)
            ago = resolver.resolve(formula, bindings, EvaluationPeriod.X_BAR_AGO, 0)
            assert now == ago

    def test_within_last_monotonic(self, resolver):
        bindings = _volume_spike(6, bars=40)
        verdicts = [
            resolver.verdict("v > sma(v,20)", bindings, EvaluationPeriod.WITHIN_LAST, n)
            for n in range(1, 12)
        ]
        first_true = verdicts.index(True)
        assert first_true == 6
        assert all(verdicts[first_true:])

    def test_within_last_numeric_truthiness(self, resolver):
        bindings = SeriesBindings.from_sequences({"close": [0.0, 0.0, 2.0]})
        assert resolver.verdict("c", bindings, EvaluationPeriod.WITHIN_LAST, 2) is False
        assert resolver.verdict("c", bindings, EvaluationPeriod.WITHIN_LAST, 3) is True

    def test_within_last_ignores_nan_bars(self, resolver):
        bindings = SeriesBindings.from_sequences({"close": [1.0]})
        assert resolver.verdict("c / prv(c) > 0", bindings, EvaluationPeriod.WITHIN_LAST, 5) is False

    def test_now_returns_raw_value(self, resolver):
        bindings = SeriesBindings.from_sequences({"close": [7.5]})
        assert resolver.resolve("c", bindings) == 7.5

    def test_period_accepts_string(self, resolver):
        bindings = SeriesBindings.from_sequences({"close": [1.0, 2.0]})
        assert resolver.resolve("c", bindings, "x_bar_ago", 1) == 2.0

    @pytest.mark.parametrize("period, value", [
        (EvaluationPeriod.WITHIN_LAST, 0),
        (EvaluationPeriod.WITHIN_LAST, -1),
        (EvaluationPeriod.WITHIN_LAST, None),
        (EvaluationPeriod.X_BAR_AGO, -1),
        (EvaluationPeriod.X_BAR_AGO, None),
    ])
    def test_invalid_ranges(self, resolver, period, value):
        with pytest.raises(InvalidRangeError):
            resolver.resolve("c", SeriesBindings(), period, value)

    def test_check_range_accepts_valid(self):
        check_range(EvaluationPeriod.NOW, None)
        check_range(EvaluationPeriod.WITHIN_LAST, 1)
        check_range(EvaluationPeriod.X_BAR_AGO, 0)
