"""
Kalman Filter Pairs Trading
===========================

Online hedge ratio estimation for a pair of price series, with
edge-triggered residual signals and a mark-to-market PnL simulator.

Modules:
    series          - TimeSeriesPair and the shared PriceTable
    kalman_filter   - Two-state (hedge, intercept) random-walk Kalman filter
    signals         - Band crossings and the regime state machine
    positions       - Lagged, forward-held leg positions
    pnl             - Daily and cumulative mark-to-market PnL
    screening       - ADF gate on the raw price spread
    pipeline        - Per-pair composition and parallel fan-out
    data_loader     - yfinance download and synthetic universes
    config          - Environment-driven configuration
"""

from kalman_pairs.exceptions import (
    DataAcquisitionError,
    InsufficientDataError,
    KalmanPairsError,
    MalformedInputError,
    SingularCovarianceError,
)
from kalman_pairs.series import PriceTable, TimeSeriesPair
from kalman_pairs.kalman_filter import (
    FilterOutput,
    FilterResult,
    KalmanHedgeEstimator,
    KalmanState,
    kalman_step,
)
from kalman_pairs.signals import (
    Regime,
    RegimeStateMachine,
    ResidualSignalGenerator,
    Signal,
    SignalResult,
    detect_crossings,
)
from kalman_pairs.positions import PositionResult, PositionSimulator
from kalman_pairs.pnl import PnLAccumulator, PnLResult, performance_summary
from kalman_pairs.screening import ScreeningResult, StationarityScreen
from kalman_pairs.pipeline import PairResult, PairsPipeline, PipelineRun

__version__ = "1.0.0"
