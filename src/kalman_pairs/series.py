"""
Aligned Price Pairs and the Shared Price Table
==============================================

TimeSeriesPair is the leaf input of the core: one dependent leg (Y) and one
regressor leg (X) observed on the same strictly increasing timestamps, with
no gaps. Gap handling (forward fill, adjusted close) belongs to the data
layer; by the time a pair is built it is either complete or rejected.

PriceTable is the owned container of every downloaded series, keyed by
asset identifier. It is built once and handed read-only to every pair task,
which is what lets independent pairs run in parallel without locking.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from kalman_pairs.exceptions import InsufficientDataError, MalformedInputError
from kalman_pairs.utils import readonly

MIN_OBSERVATIONS = 2


@dataclass(frozen=True)
class TimeSeriesPair:
    """
    Immutable aligned pair of price observations.

    Parameters
    ----------
    timestamps : pd.Index
        Strictly increasing, unique observation times.
    price_x : np.ndarray
        Regressor leg (X), e.g. the common reference asset.
    price_y : np.ndarray
        Dependent leg (Y).
    name_x, name_y : str
        Asset identifiers used in reports.
    """

    timestamps: pd.Index
    price_x: np.ndarray
    price_y: np.ndarray
    name_x: str = "X"
    name_y: str = "Y"

    def __post_init__(self):
        ts = pd.Index(self.timestamps)
        px = np.asarray(self.price_x, dtype=float)
        py = np.asarray(self.price_y, dtype=float)

        if px.ndim != 1 or py.ndim != 1:
            raise MalformedInputError("Price series must be one-dimensional")
        if len(px) != len(py) or len(ts) != len(px):
            raise MalformedInputError(
                f"Length mismatch: {len(ts)} timestamps, "
                f"{len(px)} {self.name_x} prices, {len(py)} {self.name_y} prices"
            )
        if len(px) < MIN_OBSERVATIONS:
            raise InsufficientDataError(len(px), MIN_OBSERVATIONS)

        for label, arr in ((self.name_x, px), (self.name_y, py)):
            bad = np.flatnonzero(~np.isfinite(arr))
            if bad.size:
                raise MalformedInputError(
                    f"Non-finite {label} price at position {int(bad[0])}"
                )

        if not ts.is_unique:
            raise MalformedInputError("Duplicate timestamps")
        if not ts.is_monotonic_increasing:
            raise MalformedInputError("Timestamps are not sorted ascending")

        # frozen: bypass __setattr__ to store the validated, read-only copies
        object.__setattr__(self, "timestamps", ts)
        object.__setattr__(self, "price_x", readonly(px))
        object.__setattr__(self, "price_y", readonly(py))

    def __len__(self) -> int:
        return len(self.price_x)

    @property
    def label(self) -> str:
        return f"{self.name_y}/{self.name_x}"

    @classmethod
    def from_series(cls, y: pd.Series, x: pd.Series,
                    name_y: Optional[str] = None,
                    name_x: Optional[str] = None) -> "TimeSeriesPair":
        """
        Build a pair from two pandas Series sharing the same index.

        No alignment is attempted: series indexed differently are rejected.
        """
        if len(y) != len(x):
            raise MalformedInputError(
                f"Length mismatch: {len(y)} vs {len(x)} observations"
            )
        if not y.index.equals(x.index):
            raise MalformedInputError("Series are not aligned on one index")
        return cls(
            timestamps=y.index,
            price_x=x.to_numpy(dtype=float),
            price_y=y.to_numpy(dtype=float),
            name_x=name_x or (str(x.name) if x.name is not None else "X"),
            name_y=name_y or (str(y.name) if y.name is not None else "Y"),
        )

    @classmethod
    def from_arrays(cls, price_x: Iterable[float], price_y: Iterable[float],
                    name_x: str = "X", name_y: str = "Y") -> "TimeSeriesPair":
        """Pair on a plain 0..N-1 step index (synthetic data, tests)."""
        px = np.asarray(list(price_x), dtype=float)
        py = np.asarray(list(price_y), dtype=float)
        return cls(pd.RangeIndex(len(px), name="step"), px, py, name_x, name_y)

    def spread(self) -> pd.Series:
        """Raw price spread Y - X (the screening input)."""
        return pd.Series(self.price_y - self.price_x, index=self.timestamps,
                         name="raw_spread")

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "price_x": self.price_x,
            "price_y": self.price_y,
        }, index=self.timestamps)


class PriceTable:
    """
    Immutable table of aligned price series keyed by asset identifier.

    Parameters
    ----------
    prices : pd.DataFrame
        (T x N) adjusted close prices, one column per asset, already
        aligned and gap-free.
    """

    def __init__(self, prices: pd.DataFrame):
        if prices.columns.has_duplicates:
            raise MalformedInputError("Duplicate asset identifiers")
        self._prices = prices.astype(float).copy()
        self._prices.columns = [str(c) for c in self._prices.columns]

    def __contains__(self, asset: str) -> bool:
        return asset in self._prices.columns

    def __len__(self) -> int:
        return len(self._prices)

    def __getitem__(self, asset: str) -> pd.Series:
        if asset not in self:
            raise KeyError(asset)
        return self._prices[asset].copy()

    @property
    def assets(self) -> Tuple[str, ...]:
        return tuple(self._prices.columns)

    @property
    def index(self) -> pd.Index:
        return self._prices.index

    def to_frame(self) -> pd.DataFrame:
        return self._prices.copy()

    def candidates(self, reference: str) -> List[str]:
        """Every asset except the reference leg."""
        return [a for a in self.assets if a != reference]

    def pair(self, y_asset: str, x_asset: str) -> TimeSeriesPair:
        """TimeSeriesPair with y_asset as the dependent leg."""
        return TimeSeriesPair.from_series(
            self[y_asset], self[x_asset], name_y=y_asset, name_x=x_asset
        )
