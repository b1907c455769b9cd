"""
Exception hierarchy for the Kalman pairs core.

All core failures are deterministic functions of the input data and the
configuration, so none of them is retried.
"""


class KalmanPairsError(Exception):
    """Base exception for every error raised by kalman_pairs."""
    pass


class MalformedInputError(KalmanPairsError, ValueError):
    """Length mismatch, non-finite price, or unsorted/duplicate timestamps."""
    pass


class InsufficientDataError(KalmanPairsError, ValueError):
    """Raised before any computation when a series has fewer than 2 points."""

    def __init__(self, n_obs: int, min_obs: int = 2):
        self.n_obs = n_obs
        self.min_obs = min_obs
        super().__init__(
            f"Need at least {min_obs} observations, got {n_obs}"
        )


class SingularCovarianceError(KalmanPairsError, ArithmeticError):
    """Forecast variance Q_t is not strictly positive at some step."""

    def __init__(self, step: int, forecast_variance: float):
        self.step = step
        self.forecast_variance = forecast_variance
        super().__init__(
            f"Non-positive forecast variance Q={forecast_variance!r} "
            f"at step {step} (check observation_variance > 0)"
        )


class DataAcquisitionError(KalmanPairsError, RuntimeError):
    """Price download or alignment failed; the core is never invoked."""
    pass
