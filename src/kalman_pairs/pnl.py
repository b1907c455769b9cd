"""
Mark-to-Market PnL Accumulation
===============================

    dailyPnL_t = posX_t * (P_X,t - P_X,t-1) + posY_t * (P_Y,t - P_Y,t-1)

for t > 1 (undefined at the first step), and

    cumulativePnL_t = sum_{s <= t} dailyPnL_s

over the defined steps. The running sum is never reset, smoothed or
clipped: losses reduce it.
"""

import logging
from dataclasses import dataclass
from typing import Dict

import numpy as np
import pandas as pd

from kalman_pairs.exceptions import MalformedInputError
from kalman_pairs.positions import PositionResult
from kalman_pairs.series import TimeSeriesPair
from kalman_pairs.utils import readonly

log = logging.getLogger(__name__)

TRADING_DAYS = 252


@dataclass(frozen=True)
class PnLResult:
    """Per-step and cumulative PnL; NaN at the first step."""

    timestamps: pd.Index
    daily_pnl: np.ndarray
    cumulative_pnl: np.ndarray

    def __len__(self) -> int:
        return len(self.daily_pnl)

    @property
    def total(self) -> float:
        return float(self.cumulative_pnl[-1])

    @property
    def drawdown(self) -> np.ndarray:
        """Dollar distance below the running peak of cumulative PnL."""
        cum = pd.Series(self.cumulative_pnl)
        peak = cum.cummax().clip(lower=0.0)
        return (cum - peak).to_numpy()

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "daily_pnl": self.daily_pnl,
            "cumulative_pnl": self.cumulative_pnl,
        }, index=self.timestamps)


class PnLAccumulator:
    """Marks sustained leg positions to market against raw prices."""

    def accumulate(self, positions: PositionResult,
                   pair: TimeSeriesPair) -> PnLResult:
        """
        Parameters
        ----------
        positions : PositionResult
            Held (posX_t, posY_t).
        pair : TimeSeriesPair
            Raw prices of both legs.

        Returns
        -------
        PnLResult
        """
        if len(positions) != len(pair):
            raise MalformedInputError(
                f"Length mismatch: {len(positions)} positions vs {len(pair)} prices"
            )

        dx = np.diff(pair.price_x, prepend=np.nan)
        dy = np.diff(pair.price_y, prepend=np.nan)
        daily = positions.pos_x * dx + positions.pos_y * dy

        # cumsum skips the undefined first step and keeps it NaN
        cumulative = pd.Series(daily).cumsum().to_numpy()

        return PnLResult(
            timestamps=pair.timestamps,
            daily_pnl=readonly(daily),
            cumulative_pnl=readonly(cumulative),
        )


def performance_summary(pnl: PnLResult, positions: PositionResult,
                        periods_per_year: int = TRADING_DAYS) -> Dict:
    """
    Dollar-PnL performance metrics for one pair.

    Returns
    -------
    dict
        Total PnL, Ann. Sharpe (on daily dollar PnL), Max Drawdown ($),
        Hit Rate (share of non-zero PnL days that were positive),
        Trades, Days in Market.
    """
    daily = pd.Series(pnl.daily_pnl).dropna()
    std = daily.std()
    sharpe = (daily.mean() / std * np.sqrt(periods_per_year)
              if len(daily) > 1 and std > 0 else 0.0)

    active = daily[daily != 0]
    hit_rate = float((active > 0).mean()) if len(active) > 0 else 0.0

    dd = pnl.drawdown
    max_dd = float(np.nanmin(dd)) if np.isfinite(dd).any() else 0.0

    return {
        "Total PnL": pnl.total,
        "Ann. Sharpe": float(sharpe),
        "Max Drawdown": max_dd,
        "Hit Rate": hit_rate,
        "Trades": positions.n_trades,
        "Days in Market": int(np.count_nonzero(positions.pos_y)),
    }
