"""
Position Simulation from Lagged Spread Signals
==============================================

A signal observed at step t is acted on at step t+1, so no position uses
same-bar information. At an acted-on signal with direction d (+1 long
spread, -1 short spread):

    posX_t = d * (-notional) * hedge_t
    posY_t = d * notional

Positions are held unchanged between signals and are zero before the
first one.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from kalman_pairs.exceptions import MalformedInputError
from kalman_pairs.kalman_filter import FilterResult
from kalman_pairs.signals import Signal, SignalResult
from kalman_pairs.utils import readonly

log = logging.getLogger(__name__)

SIGNAL_LAG = 1


@dataclass(frozen=True)
class PositionResult:
    """Sustained per-leg notional exposure, length N."""

    timestamps: pd.Index
    lagged_signal: np.ndarray
    pos_x: np.ndarray
    pos_y: np.ndarray

    def __len__(self) -> int:
        return len(self.pos_x)

    @property
    def n_trades(self) -> int:
        """Number of steps at which the positions were (re)set."""
        return int(np.count_nonzero(self.lagged_signal))

    @property
    def direction(self) -> np.ndarray:
        """+1 long spread, -1 short spread, 0 flat, per step."""
        return np.sign(self.pos_y).astype(int)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "lagged_signal": self.lagged_signal,
            "pos_x": self.pos_x,
            "pos_y": self.pos_y,
        }, index=self.timestamps)


class PositionSimulator:
    """
    Converts edge-triggered signals into forward-held leg positions.

    Parameters
    ----------
    notional : float
        Dollar exposure of the Y leg per trade (default 1000).
    """

    def __init__(self, notional: float = 1000.0):
        self.notional = notional

    def simulate(self, signals: SignalResult,
                 filter_result: FilterResult) -> PositionResult:
        """
        Parameters
        ----------
        signals : SignalResult
            Output of ResidualSignalGenerator.
        filter_result : FilterResult
            Supplies hedge_t for sizing the X leg.

        Returns
        -------
        PositionResult
        """
        signal = np.asarray(signals.signal, dtype=int)
        hedge = np.asarray(filter_result.hedge_ratio, dtype=float)
        if len(signal) != len(hedge):
            raise MalformedInputError(
                f"Length mismatch: {len(signal)} signals vs {len(hedge)} hedge ratios"
            )

        T = len(signal)
        lagged = np.zeros(T, dtype=int)
        lagged[SIGNAL_LAG:] = signal[:-SIGNAL_LAG]

        pos_x = np.zeros(T)
        pos_y = np.zeros(T)
        cur_x, cur_y = 0.0, 0.0
        for t in range(T):
            d = lagged[t]
            if d != Signal.NO_EVENT:
                cur_x = d * (-self.notional) * hedge[t]
                cur_y = d * self.notional
            pos_x[t] = cur_x
            pos_y[t] = cur_y

        return PositionResult(
            timestamps=filter_result.timestamps,
            lagged_signal=readonly(lagged, dtype=int),
            pos_x=readonly(pos_x),
            pos_y=readonly(pos_y),
        )
