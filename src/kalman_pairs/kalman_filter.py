"""
Kalman Filter for Adaptive Hedge Ratio Estimation
==================================================

Implements a linear Kalman filter that treats the hedge ratio and the
intercept as a latent state, allowing both to drift over time. This
captures structural shifts in the pair relationship that a static OLS
regression would miss.

State-space formulation:
    State equation:       beta_t = beta_{t-1} + w_t,   w_t ~ N(0, Vw)
    Observation equation: y_t = x_t * beta_t + v_t,    v_t ~ N(0, Ve)

where y_t = P_Y,t (dependent price), x_t = [P_X,t, 1] (regressors),
beta_t = [hedge_t, intercept_t] and Vw = delta / (1 - delta) * I.

The Kalman filter recursion:
    Predict: beta_{t|t-1} = beta_{t-1|t-1}
             R_t = P_{t-1|t-1} + Vw          (R_1 = P_0, no drift before
                                              the first observation)
    Forecast: Q_t = x_t * R_t * x_t' + Ve,   e_t = y_t - x_t * beta_{t|t-1}
    Update:  K_t = R_t * x_t' / Q_t
             beta_{t|t} = beta_{t|t-1} + K_t * e_t
             P_{t|t} = R_t - K_t * x_t * R_t

The filter starts from beta_0 = (0, 0) with P_0 = 0, so the first step
treats the zero prior as certain and leaves beta_1 = (0, 0). That
one-step warm-up is kept as is for compatibility with existing results.

References:
    Kalman (1960), Montana et al. (2009), Chan (2013) ch. 3
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np
import pandas as pd

from kalman_pairs.exceptions import SingularCovarianceError
from kalman_pairs.series import TimeSeriesPair
from kalman_pairs.utils import readonly, timeit

log = logging.getLogger(__name__)

N_STATE = 2  # [hedge, intercept]


@dataclass(frozen=True)
class KalmanState:
    """Posterior state after one step: beta = [hedge, intercept], cov P."""

    beta: np.ndarray
    cov: np.ndarray

    @classmethod
    def initial(cls) -> "KalmanState":
        return cls(readonly(np.zeros(N_STATE)),
                   readonly(np.zeros((N_STATE, N_STATE))))

    @property
    def hedge_ratio(self) -> float:
        return float(self.beta[0])

    @property
    def intercept(self) -> float:
        return float(self.beta[1])


@dataclass(frozen=True)
class FilterOutput:
    """Per-step filter output, produced once and never revised."""

    beta: np.ndarray
    innovation: float
    forecast_variance: float

    @property
    def forecast_std(self) -> float:
        return float(np.sqrt(self.forecast_variance))


def kalman_step(prior: KalmanState, price_x: float, price_y: float,
                transition_cov: Optional[np.ndarray],
                observation_variance: float,
                step: int) -> Tuple[KalmanState, FilterOutput]:
    """
    One predict/update cycle as a pure function of the prior state.

    Parameters
    ----------
    prior : KalmanState
        Posterior of the previous step.
    price_x, price_y : float
        Observation at this step.
    transition_cov : np.ndarray or None
        Vw added in the predict step. None on the first step (R_1 = P_0).
    observation_variance : float
        Ve.
    step : int
        1-based step index, reported in SingularCovarianceError.

    Returns
    -------
    (KalmanState, FilterOutput)
    """
    x_t = np.array([price_x, 1.0])

    # Predict
    beta_pred = prior.beta
    R = prior.cov if transition_cov is None else prior.cov + transition_cov

    # Forecast
    y_hat = x_t @ beta_pred
    Q = float(x_t @ R @ x_t + observation_variance)
    if not Q > 0.0:
        raise SingularCovarianceError(step, Q)
    e_t = float(price_y - y_hat)

    # Kalman gain
    Rx = R @ x_t
    K = Rx / Q

    # Update
    beta = beta_pred + K * e_t
    P = R - np.outer(K, Rx)
    P = 0.5 * (P + P.T)  # symmetric up to rounding

    state = KalmanState(readonly(beta), readonly(P))
    return state, FilterOutput(state.beta, e_t, Q)


@dataclass(frozen=True)
class FilterResult:
    """
    Full filter output sequence for one pair.

    Attributes
    ----------
    timestamps : pd.Index
    hedge_ratio, intercept : np.ndarray
        Posterior beta_t components, length N.
    innovation : np.ndarray
        e_t, the one-step-ahead residual of Y.
    forecast_variance : np.ndarray
        Q_t, the predicted variance of e_t.
    covariances : np.ndarray
        (N x 2 x 2) posterior covariances P_t.
    """

    timestamps: pd.Index
    hedge_ratio: np.ndarray
    intercept: np.ndarray
    innovation: np.ndarray
    forecast_variance: np.ndarray
    covariances: np.ndarray

    def __len__(self) -> int:
        return len(self.innovation)

    @property
    def forecast_std(self) -> np.ndarray:
        return np.sqrt(self.forecast_variance)

    @property
    def final_hedge_ratio(self) -> float:
        return float(self.hedge_ratio[-1])

    @property
    def final_intercept(self) -> float:
        return float(self.intercept[-1])

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "hedge_ratio": self.hedge_ratio,
            "intercept": self.intercept,
            "innovation": self.innovation,
            "forecast_variance": self.forecast_variance,
            "forecast_std": self.forecast_std,
        }, index=self.timestamps)


class KalmanHedgeEstimator:
    """
    Kalman filter for time-varying hedge ratio and intercept estimation.

    Parameters
    ----------
    delta : float
        State drift control in (0, 1). Larger delta = more responsive but
        noisier estimates (default 1e-4).
    observation_variance : float
        Observation noise variance Ve. Controls the filter's trust in
        observations vs. predictions (default 1e-3). A non-positive value
        surfaces as SingularCovarianceError on the first step.
    """

    def __init__(self, delta: float = 1e-4,
                 observation_variance: float = 1e-3):
        if not 0.0 < delta < 1.0:
            raise ValueError(f"delta must lie in (0, 1), got {delta}")
        self.delta = delta
        self.Ve = observation_variance
        self.Vw = readonly(delta / (1.0 - delta) * np.eye(N_STATE))

    def iter_steps(self, pair: TimeSeriesPair
                   ) -> Iterator[Tuple[KalmanState, FilterOutput]]:
        """Yield (state, output) for every step, for replay and inspection."""
        state = KalmanState.initial()
        for t, (px, py) in enumerate(zip(pair.price_x, pair.price_y)):
            Vw = None if t == 0 else self.Vw
            state, out = kalman_step(state, px, py, Vw, self.Ve, step=t + 1)
            yield state, out

    @timeit
    def filter(self, pair: TimeSeriesPair) -> FilterResult:
        """
        Run the filter over the whole pair.

        Parameters
        ----------
        pair : TimeSeriesPair
            Validated input pair.

        Returns
        -------
        FilterResult
            Length-N hedge ratio, intercept, innovation, forecast variance
            and covariance sequences.
        """
        T = len(pair)
        betas = np.zeros((T, N_STATE))
        errors = np.zeros(T)
        variances = np.zeros(T)
        covs = np.zeros((T, N_STATE, N_STATE))

        for t, (state, out) in enumerate(self.iter_steps(pair)):
            betas[t] = out.beta
            errors[t] = out.innovation
            variances[t] = out.forecast_variance
            covs[t] = state.cov

        log.debug("%s: filtered %d steps, final hedge=%.4f",
                  pair.label, T, betas[-1, 0])

        return FilterResult(
            timestamps=pair.timestamps,
            hedge_ratio=readonly(betas[:, 0]),
            intercept=readonly(betas[:, 1]),
            innovation=readonly(errors),
            forecast_variance=readonly(variances),
            covariances=readonly(covs),
        )
