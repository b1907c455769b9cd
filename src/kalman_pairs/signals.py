"""
Residual Band Signals: Crossing Detection & Regime State Machine
================================================================

Turns the Kalman innovation stream into a sparse, edge-triggered trade
direction signal.

Band:
    band_t = k * sqrt(Q_t)

Raw crossings (t > 1):
    EnterShortSpread:  e_t > +band_t  and  e_{t-1} <= +band_{t-1}
    EnterLongSpread:   e_t < -band_t  and  e_{t-1} >= -band_{t-1}

The raw crossings drive a three-state machine:
    NO_REGIME -> LONG_SPREAD / SHORT_SPREAD   on the first crossing
    LONG_SPREAD <-> SHORT_SPREAD              on an opposite crossing
Repeated same-direction crossings leave the state unchanged. A signal is
emitted only on a transition, carrying the new direction, so the stream
fires exactly once per genuine reversal.

Sign convention: EnterLongSpread = +1, EnterShortSpread = -1. The spread
is long when Y is bought against a short hedge_t * X.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

import numpy as np
import pandas as pd

from kalman_pairs.exceptions import MalformedInputError
from kalman_pairs.kalman_filter import FilterResult
from kalman_pairs.utils import readonly

log = logging.getLogger(__name__)


class Signal(IntEnum):
    ENTER_LONG_SPREAD = 1
    ENTER_SHORT_SPREAD = -1
    NO_EVENT = 0


class Regime(IntEnum):
    LONG_SPREAD = 1
    SHORT_SPREAD = -1
    NO_REGIME = 0


def detect_crossings(innovation: np.ndarray, forecast_std: np.ndarray,
                     threshold_multiplier: float = 1.0) -> np.ndarray:
    """
    Raw band crossings as an int array of Signal values.

    Parameters
    ----------
    innovation : np.ndarray
        Residuals e_t.
    forecast_std : np.ndarray
        sqrt(Q_t).
    threshold_multiplier : float
        k in band_t = k * sqrt(Q_t).

    Returns
    -------
    np.ndarray
        +1 (long), -1 (short) or 0 at each step; always 0 at the first step.
    """
    e = np.asarray(innovation, dtype=float)
    band = threshold_multiplier * np.asarray(forecast_std, dtype=float)
    if e.shape != band.shape:
        raise MalformedInputError(
            f"Length mismatch: {len(e)} residuals vs {len(band)} band values"
        )

    raw = np.zeros(len(e), dtype=int)
    if len(e) < 2:
        return raw

    up = (e[1:] > band[1:]) & (e[:-1] <= band[:-1])
    down = (e[1:] < -band[1:]) & (e[:-1] >= -band[:-1])
    raw[1:][up] = Signal.ENTER_SHORT_SPREAD
    raw[1:][down] = Signal.ENTER_LONG_SPREAD
    return raw


class RegimeStateMachine:
    """Holds the most recently triggered direction; reports flips."""

    def __init__(self):
        self.state = Regime.NO_REGIME

    def transition(self, raw: int) -> Signal:
        """Feed one raw crossing value; return the emitted signal."""
        if raw == Signal.NO_EVENT:
            return Signal.NO_EVENT
        new_state = Regime(int(raw))
        if new_state == self.state:
            return Signal.NO_EVENT
        self.state = new_state
        return Signal(int(new_state))


@dataclass(frozen=True)
class SignalResult:
    """Raw crossings, held regime and emitted signals, all length N."""

    timestamps: pd.Index
    band: np.ndarray
    raw: np.ndarray
    regime: np.ndarray
    signal: np.ndarray

    def __len__(self) -> int:
        return len(self.signal)

    @property
    def n_signals(self) -> int:
        return int(np.count_nonzero(self.signal))

    def events(self) -> pd.Series:
        """Only the non-NoEvent steps, labelled by direction name."""
        s = pd.Series(self.signal, index=self.timestamps)
        s = s[s != Signal.NO_EVENT]
        return s.map(lambda v: Signal(v).name)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "band": self.band,
            "raw_crossing": self.raw,
            "regime": self.regime,
            "signal": self.signal,
        }, index=self.timestamps)


class ResidualSignalGenerator:
    """
    Edge-triggered spread-direction signals from Kalman residuals.

    Parameters
    ----------
    threshold_multiplier : float
        Band width in forecast standard deviations (default 1.0; the
        aggressive profile uses 0.5).
    """

    def __init__(self, threshold_multiplier: float = 1.0):
        if not threshold_multiplier > 0:
            raise ValueError(
                f"threshold_multiplier must be positive, got {threshold_multiplier}"
            )
        self.k = threshold_multiplier

    def generate(self, filter_result: FilterResult) -> SignalResult:
        """Signals for one filtered pair."""
        return self.generate_from_arrays(
            filter_result.innovation, filter_result.forecast_std,
            index=filter_result.timestamps,
        )

    def generate_from_arrays(self, innovation: np.ndarray,
                             forecast_std: np.ndarray,
                             index: Optional[pd.Index] = None) -> SignalResult:
        raw = detect_crossings(innovation, forecast_std, self.k)
        T = len(raw)

        machine = RegimeStateMachine()
        regime = np.zeros(T, dtype=int)
        signal = np.zeros(T, dtype=int)
        for t in range(T):
            signal[t] = machine.transition(raw[t])
            regime[t] = machine.state

        if index is None:
            index = pd.RangeIndex(T, name="step")
        elif len(index) != T:
            raise MalformedInputError(
                f"Length mismatch: {len(index)} timestamps vs {T} residuals"
            )

        log.debug("%d raw crossings, %d regime flips (k=%.2f)",
                  np.count_nonzero(raw), np.count_nonzero(signal), self.k)

        return SignalResult(
            timestamps=index,
            band=readonly(self.k * np.asarray(forecast_std, dtype=float)),
            raw=readonly(raw, dtype=int),
            regime=readonly(regime, dtype=int),
            signal=readonly(signal, dtype=int),
        )
