"""
Price Data Acquisition
======================
Provides:
    - Adjusted close prices via yfinance, aligned on one index and
      forward-filled so the core never sees a gap
    - A reproducible synthetic universe around a common reference leg,
      mixing mean-reverting and drifting candidates, for offline runs

Any download failure is converted into DataAcquisitionError here; the core
only ever receives a complete PriceTable or is not invoked.
"""

import logging
import warnings
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import yfinance as yf

from kalman_pairs.exceptions import DataAcquisitionError
from kalman_pairs.series import PriceTable

warnings.filterwarnings("ignore", category=FutureWarning)

log = logging.getLogger(__name__)


def fetch_prices(tickers: Sequence[str], start: str,
                 end: Optional[str] = None) -> pd.DataFrame:
    """
    Download adjusted close prices. Returns DataFrame indexed by date.

    Columns with no data at all are dropped (and logged); remaining gaps
    are forward-filled and any leading rows still missing a value are cut.
    """
    tickers = list(dict.fromkeys(t.upper() for t in tickers))
    try:
        raw = yf.download(tickers, start=start, end=end,
                          auto_adjust=True, progress=False)
    except Exception as e:
        raise DataAcquisitionError(f"Failed to fetch prices: {e}") from e

    if raw is None or raw.empty:
        raise DataAcquisitionError(f"No price data returned for {tickers}")

    if isinstance(raw.columns, pd.MultiIndex):
        prices = raw["Close"]
    else:
        prices = raw[["Close"]] if "Close" in raw.columns else raw
        if len(tickers) == 1:
            prices.columns = tickers

    prices = prices.dropna(axis=1, how="all")
    missing = [t for t in tickers if t not in prices.columns]
    if missing:
        log.warning("No data for %s; dropped from universe", ", ".join(missing))

    prices = prices.sort_index().ffill().dropna(how="any")
    prices.index = pd.to_datetime(prices.index)
    if len(prices) < 2:
        raise DataAcquisitionError(
            f"Fewer than 2 aligned observations for {list(prices.columns)}"
        )

    log.info("Fetched %d rows x %d assets (%s to %s)", len(prices),
             prices.shape[1], prices.index[0].date(), prices.index[-1].date())
    return prices


def load_price_table(reference: str, candidates: Sequence[str], start: str,
                     end: Optional[str] = None) -> PriceTable:
    """Fetch reference + candidates into one PriceTable."""
    prices = fetch_prices([reference, *candidates], start, end)
    if reference.upper() not in prices.columns:
        raise DataAcquisitionError(f"No data for reference leg {reference}")
    return PriceTable(prices)


def generate_synthetic_universe(reference: str = "REF",
                                candidates: Optional[Dict[str, Dict]] = None,
                                n_days: int = 750,
                                seed: int = 42) -> PriceTable:
    """
    Synthetic price universe around a geometric random-walk reference leg.

    Each candidate follows
        P_Y,t = hedge * P_X,t + intercept + S_t
    where S_t is AR(1) with coefficient phi (|phi| < 1 mean-reverts,
    phi = 1 is a random walk) plus an optional deterministic drift, so
    reverting and diverging candidates can be mixed in one table.

    Parameters
    ----------
    reference : str
        Identifier of the common X leg.
    candidates : dict
        {name: {"hedge", "intercept", "phi", "sigma", "drift"}}; missing
        keys take defaults. None builds a default four-asset universe.
    n_days : int
        Business days of history.
    seed : int
        RNG seed.

    Returns
    -------
    PriceTable
    """
    if candidates is None:
        candidates = {
            "REV_A":   {"hedge": 1.0, "intercept": 5.0,  "phi": 0.90, "sigma": 0.5},
            "REV_B":   {"hedge": 1.0, "intercept": -3.0, "phi": 0.80, "sigma": 0.8},
            "REV_C":   {"hedge": 1.0, "intercept": 10.0, "phi": 0.95, "sigma": 0.4},
            "DRIFTER": {"hedge": 1.0, "intercept": 0.0,  "phi": 1.0,  "sigma": 0.5,
                        "drift": 0.2},
        }

    rng = np.random.RandomState(seed)
    dates = pd.bdate_range("2019-01-02", periods=n_days)

    ref = 50.0 * np.exp(np.cumsum(rng.normal(0.0002, 0.01, n_days)))
    data = {reference: ref}

    for name, params in candidates.items():
        phi = params.get("phi", 0.9)
        sigma = params.get("sigma", 0.5)
        drift = params.get("drift", 0.0)
        s = np.zeros(n_days)
        for t in range(1, n_days):
            s[t] = phi * s[t - 1] + drift + rng.normal(0, sigma)
        level = params.get("hedge", 1.0) * ref + params.get("intercept", 0.0) + s
        # keep prices strictly positive
        data[name] = np.maximum(level, 0.01)

    return PriceTable(pd.DataFrame(data, index=dates))


def universe_summary(table: PriceTable) -> List[str]:
    """One descriptive line per asset."""
    frame = table.to_frame()
    lines = []
    for col in frame.columns:
        s = frame[col]
        lines.append(f"{col:<10} first={s.iloc[0]:>10.2f} last={s.iloc[-1]:>10.2f} "
                     f"min={s.min():>10.2f} max={s.max():>10.2f}")
    return lines
