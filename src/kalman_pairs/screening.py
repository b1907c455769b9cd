"""
Stationarity Screening of the Raw Price Spread
==============================================

Pre-filter gate deciding whether a pair is worth running through the
Kalman core at all. The Augmented Dickey-Fuller test is applied to the raw
spread S_t = P_Y,t - P_X,t:

    dS_t = c + gamma * S_{t-1} + sum_i phi_i * dS_{t-i} + eps_t

H0: gamma = 0 (unit root, no mean reversion). The pair proceeds when the
MacKinnon p-value is below the cutoff (conventionally 0.10).

The gate is deliberately coarse: it screens candidates, it does not
estimate the hedge ratio (the filter does that).

References:
    Dickey & Fuller (1979), Said & Dickey (1984), MacKinnon (1994)
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
from statsmodels.tsa.stattools import adfuller

from kalman_pairs.series import TimeSeriesPair

warnings.filterwarnings("ignore", category=FutureWarning)

log = logging.getLogger(__name__)

MIN_SCREEN_OBS = 20


def max_adf_lags(n_obs: int) -> int:
    """Largest fixed lag adfuller accepts with a constant: maxlag < n/2 - 2."""
    return max(0, n_obs // 2 - 3)


@dataclass(frozen=True)
class ScreeningResult:
    """ADF outcome for one pair's raw spread."""

    pair: str
    adf_stat: float
    adf_pvalue: float
    adf_lags: int
    n_obs: int
    critical_values: Dict[str, float] = field(default_factory=dict)
    passed: bool = False
    reason: str = ""

    def to_dict(self) -> Dict:
        return {
            "pair": self.pair,
            "adf_stat": self.adf_stat,
            "adf_pvalue": self.adf_pvalue,
            "adf_lags": self.adf_lags,
            "n_obs": self.n_obs,
            "passed": self.passed,
            "reason": self.reason,
        }


class StationarityScreen:
    """
    ADF unit-root gate on the raw price spread.

    Parameters
    ----------
    pvalue_cutoff : float
        Proceed when p-value < cutoff (default 0.10).
    max_lags : int or None
        Maximum lag order for ADF. If None, uses automatic selection
        via the AIC criterion.
    """

    def __init__(self, pvalue_cutoff: float = 0.10,
                 max_lags: Optional[int] = None):
        self.pvalue_cutoff = pvalue_cutoff
        self.max_lags = max_lags
        self.results = None

    def test(self, pair: TimeSeriesPair) -> ScreeningResult:
        """
        Run the ADF test on Y - X.

        Parameters
        ----------
        pair : TimeSeriesPair

        Returns
        -------
        ScreeningResult
            passed is True when adf_pvalue < pvalue_cutoff.
        """
        spread = pair.spread().to_numpy()

        if len(spread) < MIN_SCREEN_OBS:
            result = self._empty_result(pair.label, len(spread),
                                        "Insufficient data")
        elif np.ptp(spread) == 0:
            result = self._empty_result(pair.label, len(spread),
                                        "Constant spread")
        else:
            result = self._adf_result(pair.label, spread)

        log.info("Screen %s: ADF p=%.4f -> %s", pair.label, result.adf_pvalue,
                 "proceed" if result.passed else "skip")
        self.results = result
        return result

    def _adf_result(self, label: str, spread: np.ndarray) -> ScreeningResult:
        """ADF on a non-degenerate spread; fixed lags are capped to fit it."""
        maxlag = self.max_lags
        if maxlag is not None and maxlag > max_adf_lags(len(spread)):
            log.warning("%s: max_lags %d too large for %d points; using %d",
                        label, maxlag, len(spread), max_adf_lags(len(spread)))
            maxlag = max_adf_lags(len(spread))

        try:
            adf = adfuller(spread, maxlag=maxlag,
                           autolag="AIC" if maxlag is None else None)
        except (ValueError, np.linalg.LinAlgError) as e:
            log.warning("%s: ADF failed: %s", label, e)
            return self._empty_result(label, len(spread), f"ADF failed: {e}")

        pvalue = float(adf[1])
        return ScreeningResult(
            pair=label,
            adf_stat=float(adf[0]),
            adf_pvalue=pvalue,
            adf_lags=int(adf[2]),
            n_obs=int(adf[3]),
            critical_values={k: float(v) for k, v in adf[4].items()},
            passed=pvalue < self.pvalue_cutoff,
            reason="" if pvalue < self.pvalue_cutoff
            else f"p-value {pvalue:.4f} >= {self.pvalue_cutoff:.2f}",
        )

    @staticmethod
    def _empty_result(label: str, n_obs: int, reason: str) -> ScreeningResult:
        """Failed screen with no test statistic."""
        return ScreeningResult(
            pair=label, adf_stat=np.nan, adf_pvalue=1.0, adf_lags=0,
            n_obs=n_obs, passed=False, reason=reason,
        )

    def get_summary(self) -> str:
        """Return formatted test summary."""
        if self.results is None:
            return "Run test() first."
        r = self.results
        sig = "***" if r.adf_pvalue < 0.01 else \
              "**" if r.adf_pvalue < 0.05 else \
              "*" if r.adf_pvalue < 0.10 else ""
        lines = [
            "=" * 60,
            "ADF STATIONARITY SCREEN (RAW PRICE SPREAD)",
            "=" * 60,
            f"Pair (Y/X):         {r.pair}",
            f"ADF statistic:      {r.adf_stat:.4f} {sig}",
            f"ADF p-value:        {r.adf_pvalue:.6f}",
            f"ADF lags used:      {r.adf_lags}",
            f"Cutoff:             {self.pvalue_cutoff:.2f}",
            f"Proceed:            {r.passed}",
            "-" * 60,
            "Critical values:",
        ]
        for k, v in r.critical_values.items():
            lines.append(f"  {k}: {v:.4f}")
        if r.reason:
            lines.append(f"Reason: {r.reason}")
        lines.append("=" * 60)
        return "\n".join(lines)
