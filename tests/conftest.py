"""Pytest configuration and fixtures."""

import pytest
import pandas as pd

from ez_scan.backend.local import Instrument, LocalEvaluationBackend
from ez_scan.compiler.compiler import ScanCompiler
from ez_scan.core.enums import ColumnType, EvaluationPeriod, SortDirection
from ez_scan.core.models import ColumnConfig, FilterCondition, ScanState, SortColumn
from ez_scan.expression.evaluator import Evaluator
from ez_scan.temporal.resolver import TemporalResolver


def make_bars(closes, volumes=None, opens=None):
    """Chronological OHLCV frame (oldest first) from close prices."""
    n = len(closes)
    volumes = volumes if volumes is not None else [1000.0] * n
    opens = opens if opens is not None else list(closes)
    dates = pd.date_range(start='2024-01-01', periods=n, freq='1D')
    return pd.DataFrame({
        'open': [float(x) for x in opens],
        'high': [float(c) * 1.01 for c in closes],
        'low': [float(c) * 0.99 for c in closes],
        'close': [float(c) for c in closes],
        'volume': [float(v) for v in volumes],
    }, index=dates)


@pytest.fixture
def bars():
    """Factory for chronological OHLCV frames."""
    return make_bars


@pytest.fixture
def evaluator():
    return Evaluator()


@pytest.fixture
def resolver(evaluator):
    return TemporalResolver(evaluator)


@pytest.fixture
def compiler():
    return ScanCompiler()


@pytest.fixture
def instruments():
    """Three instruments with distinct trends and metadata."""
    return [
        # Rising: 100 -> 124, volume spike two bars ago
        Instrument(
            'TCS',
            make_bars(
                [100 + i for i in range(25)],
                volumes=[1000.0] * 22 + [5000.0, 1000.0, 1000.0],
            ),
            {'market_cap': 12000.0, 'sector': 'IT'},
        ),
        # Falling: 200 -> 176
        Instrument(
            'INFY',
            make_bars([200 - i for i in range(25)]),
            {'market_cap': 6000.0, 'sector': 'IT'},
        ),
        # Flat at 50, small cap
        Instrument(
            'ABB',
            make_bars([50.0] * 25),
            {'market_cap': 800.0, 'sector': 'Industrials'},
        ),
    ]


@pytest.fixture
def local_backend(instruments):
    return LocalEvaluationBackend({'india': instruments})


@pytest.fixture
def sample_state():
    """Scan with one column of each type, a filter and a sort by display name."""
    return ScanState(
        market='india',
        columns=[
            ColumnConfig(id='mcap', name='Market Cap', type=ColumnType.STATIC, property_name='market_cap'),
            ColumnConfig(id='chg', name='Change %', type=ColumnType.COMPUTED, expression='(c/prv(c)-1)*100'),
            ColumnConfig(
                id='bullish_setup',
                name='Bullish Setup',
                type=ColumnType.CONDITION,
                logic='and',
                conditions=[
                    FilterCondition(expression='c > sma(c,20)'),
                    FilterCondition(
                        expression='v > sma(v,20)',
                        evaluation_period=EvaluationPeriod.WITHIN_LAST,
                        value=3,
                    ),
                ],
            ),
        ],
        conditions=[FilterCondition(expression='market_cap > 1000', condition_type='static')],
        sort_columns=[SortColumn(column='Bullish Setup', direction=SortDirection.DESC)],
    )
