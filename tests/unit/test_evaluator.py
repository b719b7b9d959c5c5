"""Unit tests for expression evaluation."""

import math

import numpy as np
import pytest

from ez_scan.core.errors import UnknownSymbolError
from ez_scan.expression.bindings import SeriesBindings
from ez_scan.expression.evaluator import Evaluator, arithmetic, truthy
from ez_scan.expression.functions import create_default_registry


class TestArithmetic:
    def test_decimal_exactness(self):
        assert arithmetic("-", 1.1, 1.0) == 0.1
        assert arithmetic("+", 0.1, 0.2) == 0.3

    def test_division_by_zero_is_nan(self):
        assert math.isnan(arithmetic("/", 1.0, 0.0))

    def test_nan_propagates(self):
        assert math.isnan(arithmetic("*", math.nan, 2.0))

    def test_undefined_is_nan(self):
        assert math.isnan(arithmetic("-", math.inf, math.inf))

    def test_truthy(self):
        assert truthy(True)
        assert truthy(2.5)
        assert not truthy(0.0)
        assert not truthy(math.nan)
        assert not truthy(False)


class TestEvaluator:
    def setup_method(self):
        self.evaluator = Evaluator()

    def test_percent_change_is_exact(self):
        bindings = SeriesBindings.from_sequences({"close": [110.0, 100.0]})
        result = self.evaluator.evaluate("(c/prv(c)-1)*100", bindings)
        assert result == 10

    def test_arithmetic_rounds_once(self):
        bindings = SeriesBindings.from_sequences({"close": [1.0]})
        assert self.evaluator.evaluate("c/3*3", bindings) == 1.0
        assert self.evaluator.evaluate("-(c/3)*3", bindings) == -1.0

    def test_percent_change_without_history_is_nan(self):
        bindings = SeriesBindings.from_sequences({"close": [110.0]})
        assert math.isnan(self.evaluator.evaluate("(c/prv(c)-1)*100", bindings))

    def test_from_frame_latest_first(self, bars):
        bindings = SeriesBindings.from_frame(bars([1, 2, 3]))
        assert bindings.get("close", 0) == 3.0
        assert bindings.get("close", 2) == 1.0
        assert math.isnan(bindings.get("close", 3))

    def test_comparison_returns_bool(self):
        bindings = SeriesBindings.from_sequences({"close": [5.0], "open": [4.0]})
        assert self.evaluator.evaluate("c > o", bindings) is True
        assert self.evaluator.evaluate("c < o", bindings) is False

    def test_comparison_with_nan_is_false(self):
        bindings = SeriesBindings.from_sequences({"close": [5.0]})
        assert self.evaluator.evaluate("c > o", bindings) is False
        assert self.evaluator.evaluate("c != o", bindings) is False
        assert self.evaluator.evaluate("c / 0 < 1", bindings) is False

    def test_bool_counts_as_number(self):
        bindings = SeriesBindings.from_sequences({"close": [5.0], "open": [4.0]})
        assert self.evaluator.evaluate("(c > o) + (c < o)", bindings) == 1.0

    def test_bar_offset_shifts_series(self):
        bindings = SeriesBindings.from_sequences({"close": [4.0, 3.0, 2.0, 1.0]})
        assert self.evaluator.evaluate("c", bindings, 2) == 2.0
        assert self.evaluator.evaluate("c - prv(c)", bindings, 1) == 1.0

    def test_shift_invariance(self):
        closes = [float(x) for x in [9, 3, 7, 1, 8, 2, 6, 4, 5, 10, 11, 12]]
        bindings = SeriesBindings.from_sequences({"close": closes})
        for formula in ["c/sma(c,3)", "ema(c,4)", "max(c,3) - min(c,3)", "std(c,3)"]:
            for k in range(3):
                shifted = bindings.shift(k)
                a = self.evaluator.evaluate(formula, bindings, k)
                b = self.evaluator.evaluate(formula, shifted, 0)
                assert a == b or (math.isnan(a) and math.isnan(b)), formula

    def test_nested_series_argument(self):
        bindings = SeriesBindings.from_sequences({
            "close": [10.0, 20.0],
            "open": [5.0, 10.0],
        })
        assert self.evaluator.evaluate("sma(c/o, 2)", bindings) == 2.0

    def test_insufficient_history_is_nan(self):
        bindings = SeriesBindings.from_sequences({"close": [1.0, 2.0, 3.0]})
        assert math.isnan(self.evaluator.evaluate("sma(c,20)", bindings))

    def test_accepts_parsed_tree(self):
        tree = self.evaluator.parser.parse("c * 2")
        bindings = SeriesBindings.from_sequences({"close": [21.0]})
        assert self.evaluator.evaluate(tree, bindings) == 42.0

    def test_unknown_symbol_raises(self):
        with pytest.raises(UnknownSymbolError):
            self.evaluator.evaluate("q + 1", SeriesBindings())

    def test_custom_function(self):
        registry = create_default_registry()

        @registry.function("double", params=["series"])
        def double(series):
            return series.at(0) * 2

        evaluator = Evaluator(functions=registry)
        bindings = SeriesBindings.from_sequences({"close": [3.0, 1.0]})
        assert evaluator.evaluate("double(c)", bindings) == 6.0
        assert evaluator.evaluate("double(c)", bindings, 1) == 2.0


class TestSeriesBindings:
    def test_window_pads_with_nan(self):
        bindings = SeriesBindings.from_sequences({"close": [3.0, 2.0]})
        window = bindings.window("close", 1, 3)
        assert window[0] == 2.0
        assert np.isnan(window[1:]).all()

    def test_from_values_non_numeric(self):
        bindings = SeriesBindings.from_values({"market_cap": "1500", "sector": "IT", "pe": None})
        assert bindings.get("market_cap", 0) == 1500.0
        assert math.isnan(bindings.get("sector", 0))
        assert math.isnan(bindings.get("pe", 0))

    def test_len_and_fields(self):
        bindings = SeriesBindings.from_sequences({"close": [1.0, 2.0, 3.0], "volume": [1.0]})
        assert len(bindings) == 3
        assert bindings.fields == {"close", "volume"}
