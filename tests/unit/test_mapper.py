"""Unit tests for the result row mapper."""

import math

import pytest

from ez_scan.backend.base import BackendResponse
from ez_scan.compiler.compiler import ScanCompiler
from ez_scan.core.errors import ScanExecutionError
from ez_scan.mapper.mapper import ResultRowMapper


class TestResultRowMapper:
    def setup_method(self):
        self.mapper = ResultRowMapper()

    @pytest.fixture
    def plan(self, sample_state):
        return ScanCompiler().compile(sample_state)

    def test_reorders_to_configured_order(self, plan):
        response = BackendResponse(
            columns=["bullish_setup", "chg", "mcap"],
            rows=[["TCS", True, 1.5, 12000.0]],
        )
        rows = self.mapper.map_rows(plan, response)
        assert list(rows[0].values) == ["mcap", "chg", "bullish_setup"]
        assert rows[0].values == {"mcap": 12000.0, "chg": 1.5, "bullish_setup": True}

    def test_same_result_for_any_header_order(self, plan):
        a = BackendResponse(columns=["mcap", "chg", "bullish_setup"], rows=[["TCS", 1.0, 2.0, False]])
        b = BackendResponse(columns=["chg", "bullish_setup", "mcap"], rows=[["TCS", 2.0, False, 1.0]])
        assert self.mapper.map_rows(plan, a) == self.mapper.map_rows(plan, b)

    def test_result_columns(self, plan):
        result = self.mapper.map(plan, BackendResponse(columns=["mcap", "chg", "bullish_setup"]))
        assert result.column_ids == ["mcap", "chg", "bullish_setup"]
        assert [c.name for c in result.columns] == ["Market Cap", "Change %", "Bullish Setup"]
        assert result.market == "india"
        assert len(result) == 0

    def test_nan_and_null_pass_through(self, plan):
        response = BackendResponse(
            columns=["mcap", "chg", "bullish_setup"],
            rows=[["ABB", None, None, None], ["INFY", 5.0, float("nan"), float("nan")]],
        )
        rows = self.mapper.map_rows(plan, response)
        assert len(rows) == 2
        assert math.isnan(rows[0].values["mcap"])
        assert math.isnan(rows[0].values["chg"])
        assert rows[0].values["bullish_setup"] is False
        assert math.isnan(rows[1].values["chg"])
        assert rows[1].values["bullish_setup"] is False

    def test_no_rounding(self, plan):
        response = BackendResponse(
            columns=["mcap", "chg", "bullish_setup"],
            rows=[["TCS", 1.0, 0.813008130081301, 1]],
        )
        row = self.mapper.map_rows(plan, response)[0]
        assert row.values["chg"] == 0.813008130081301
        assert row.values["bullish_setup"] is True

    def test_admission_column_filters(self, plan):
        response = BackendResponse(
            columns=["chg", "_match", "mcap", "bullish_setup"],
            rows=[
                ["TCS", 1.0, True, 1.0, True],
                ["ABB", 2.0, False, 1.0, False],
                ["INFY", 3.0, None, 1.0, False],
            ],
        )
        rows = self.mapper.map_rows(plan, response)
        assert [r.ticker for r in rows] == ["TCS"]
        assert "_match" not in rows[0].values

    def test_extra_columns_ignored(self, plan):
        response = BackendResponse(
            columns=["mcap", "chg", "bullish_setup", "debug"],
            rows=[["TCS", 1.0, 2.0, True, "x"]],
        )
        rows = self.mapper.map_rows(plan, response)
        assert "debug" not in rows[0].values

    def test_missing_column(self, plan):
        response = BackendResponse(columns=["mcap", "chg"], rows=[])
        with pytest.raises(ScanExecutionError, match="bullish_setup"):
            self.mapper.map_rows(plan, response)

    def test_duplicate_header(self, plan):
        response = BackendResponse(columns=["mcap", "chg", "bullish_setup", "chg"], rows=[])
        with pytest.raises(ScanExecutionError):
            self.mapper.map_rows(plan, response)

    def test_ragged_row(self, plan):
        response = BackendResponse(
            columns=["mcap", "chg", "bullish_setup"],
            rows=[["TCS", 1.0, 2.0]],
        )
        with pytest.raises(ScanExecutionError, match="row 0"):
            self.mapper.map_rows(plan, response)

    def test_bad_computed_value(self, plan):
        response = BackendResponse(
            columns=["mcap", "chg", "bullish_setup"],
            rows=[["TCS", 1.0, "n/a", True]],
        )
        with pytest.raises(ScanExecutionError, match="chg"):
            self.mapper.map_rows(plan, response)

    def test_missing_ticker(self, plan):
        response = BackendResponse(
            columns=["mcap", "chg", "bullish_setup"],
            rows=[[None, 1.0, 2.0, True]],
        )
        with pytest.raises(ScanExecutionError, match="ticker"):
            self.mapper.map_rows(plan, response)

    def test_to_frame_rounds_only_for_display(self, plan):
        response = BackendResponse(
            columns=["mcap", "chg", "bullish_setup"],
            rows=[["TCS", 12000.0, 0.8130081, True]],
        )
        result = self.mapper.map(plan, response)
        frame = result.to_frame(decimals=2)
        assert frame.index.name == "ticker"
        assert list(frame.columns) == ["mcap", "chg", "bullish_setup"]
        assert frame.loc["TCS", "chg"] == 0.81
        assert result.rows[0].values["chg"] == 0.8130081
