"""
Unit Tests for the Kalman Pairs Core
====================================

Covers: input validation, the Kalman hedge estimator, residual band
signals and the regime state machine, lagged positions, and PnL.
"""

import dataclasses

import numpy as np
import pandas as pd
import pytest

from kalman_pairs.exceptions import (InsufficientDataError, KalmanPairsError,
                                     MalformedInputError,
                                     SingularCovarianceError)
from kalman_pairs.kalman_filter import (FilterResult, KalmanHedgeEstimator,
                                        KalmanState, kalman_step)
from kalman_pairs.pnl import PnLAccumulator, performance_summary
from kalman_pairs.positions import PositionResult, PositionSimulator
from kalman_pairs.series import PriceTable, TimeSeriesPair
from kalman_pairs.signals import (Regime, RegimeStateMachine,
                                  ResidualSignalGenerator, Signal,
                                  detect_crossings)


SHOCK_STEP = 149  # 0-based index of the injected outlier


def _sine_pair(n=200, shock=None):
    """Noise-free y = 2x on a well-excited regressor."""
    t = np.arange(1, n + 1)
    x = 10.0 + 5.0 * np.sin(t / 3.0)
    y = 2.0 * x
    if shock is not None:
        y = y.copy()
        y[shock] += 10.0
    return TimeSeriesPair.from_arrays(x, y)


def _filter_result(innovation, forecast_std, hedge=None):
    n = len(innovation)
    hedge = np.ones(n) if hedge is None else np.asarray(hedge, dtype=float)
    return FilterResult(
        timestamps=pd.RangeIndex(n),
        hedge_ratio=hedge,
        intercept=np.zeros(n),
        innovation=np.asarray(innovation, dtype=float),
        forecast_variance=np.asarray(forecast_std, dtype=float) ** 2,
        covariances=np.zeros((n, 2, 2)),
    )


@pytest.fixture(scope="module")
def toy_pair():
    return TimeSeriesPair.from_arrays([1, 2, 3, 4, 5], [2, 4, 6, 8, 10])


@pytest.fixture(scope="module")
def shocked_toy_pair():
    return TimeSeriesPair.from_arrays([1, 2, 3, 4, 5], [2, 4, 6, 18, 10])


@pytest.fixture(scope="module")
def random_walk_pair():
    """Noisy linearly related random walks."""
    rng = np.random.RandomState(123)
    T = 500
    dates = pd.bdate_range("2020-01-01", periods=T)
    x = 50.0 + np.cumsum(rng.normal(0, 0.5, T))
    y = 1.5 * x + 3.0 + rng.normal(0, 0.5, T)
    return TimeSeriesPair.from_series(pd.Series(y, index=dates, name="B"),
                                      pd.Series(x, index=dates, name="A"))


@pytest.fixture(scope="module")
def estimator():
    return KalmanHedgeEstimator(delta=1e-4, observation_variance=1e-3)


# ---------------------------------------------------------------------------
# TimeSeriesPair
# ---------------------------------------------------------------------------
class TestTimeSeriesPair:
    def test_from_series_keeps_names_and_index(self, random_walk_pair):
        assert random_walk_pair.name_y == "B"
        assert random_walk_pair.name_x == "A"
        assert random_walk_pair.label == "B/A"
        assert len(random_walk_pair) == 500
        assert isinstance(random_walk_pair.timestamps, pd.DatetimeIndex)

    def test_length_mismatch(self):
        with pytest.raises(MalformedInputError):
            TimeSeriesPair.from_arrays([1, 2, 3], [1, 2])

    def test_non_finite_price(self):
        with pytest.raises(MalformedInputError, match="Non-finite"):
            TimeSeriesPair.from_arrays([1, np.nan, 3], [1, 2, 3])
        with pytest.raises(MalformedInputError):
            TimeSeriesPair.from_arrays([1, 2, 3], [1, np.inf, 3])

    def test_single_observation(self):
        with pytest.raises(InsufficientDataError):
            TimeSeriesPair.from_arrays([1.0], [2.0])

    def test_empty(self):
        with pytest.raises(InsufficientDataError):
            TimeSeriesPair.from_arrays([], [])

    def test_unsorted_timestamps(self):
        ts = pd.to_datetime(["2024-01-02", "2024-01-01", "2024-01-03"])
        with pytest.raises(MalformedInputError, match="sorted"):
            TimeSeriesPair(ts, np.ones(3), np.ones(3))

    def test_duplicate_timestamps(self):
        ts = pd.to_datetime(["2024-01-01", "2024-01-01", "2024-01-03"])
        with pytest.raises(MalformedInputError, match="Duplicate"):
            TimeSeriesPair(ts, np.ones(3), np.ones(3))

    def test_misaligned_series(self):
        y = pd.Series([1.0, 2.0], index=[0, 1])
        x = pd.Series([1.0, 2.0], index=[1, 2])
        with pytest.raises(MalformedInputError, match="aligned"):
            TimeSeriesPair.from_series(y, x)

    def test_errors_share_base_class(self):
        with pytest.raises(KalmanPairsError):
            TimeSeriesPair.from_arrays([1.0], [1.0])
        with pytest.raises(ValueError):
            TimeSeriesPair.from_arrays([1, 2], [1, np.nan])

    def test_prices_are_read_only(self, toy_pair):
        with pytest.raises(ValueError):
            toy_pair.price_x[0] = 99.0
        with pytest.raises(dataclasses.FrozenInstanceError):
            toy_pair.name_x = "Z"

    def test_input_array_not_aliased(self):
        x = np.array([1.0, 2.0, 3.0])
        pair = TimeSeriesPair.from_arrays(x, x * 2)
        x[0] = 100.0
        assert pair.price_x[0] == 1.0

    def test_spread(self, toy_pair):
        np.testing.assert_allclose(toy_pair.spread().values, [1, 2, 3, 4, 5])


class TestPriceTable:
    def test_pair_and_candidates(self):
        idx = pd.bdate_range("2024-01-01", periods=4)
        table = PriceTable(pd.DataFrame({
            "REF": [10.0, 11, 12, 13], "A": [20.0, 21, 22, 23],
            "B": [5.0, 6, 5, 6],
        }, index=idx))
        assert table.assets == ("REF", "A", "B")
        assert table.candidates("REF") == ["A", "B"]
        pair = table.pair("A", "REF")
        assert pair.label == "A/REF"
        np.testing.assert_allclose(pair.price_x, [10, 11, 12, 13])

    def test_returns_copies(self):
        table = PriceTable(pd.DataFrame({"A": [1.0, 2.0], "B": [3.0, 4.0]}))
        s = table["A"]
        s.iloc[0] = 100.0
        assert table["A"].iloc[0] == 1.0

    def test_missing_asset(self):
        table = PriceTable(pd.DataFrame({"A": [1.0, 2.0]}))
        with pytest.raises(KeyError):
            table["B"]


# ---------------------------------------------------------------------------
# Kalman filter
# ---------------------------------------------------------------------------
class TestKalmanHedgeEstimator:
    def test_toy_recursion_values(self, estimator, toy_pair):
        res = estimator.filter(toy_pair)
        np.testing.assert_allclose(
            res.hedge_ratio,
            [0.0, 0.533369, 1.316746, 1.709781, 1.846139], atol=1e-5)
        np.testing.assert_allclose(
            res.intercept,
            [0.0, 0.266684, 0.503757, 0.571515, 0.584063], atol=1e-5)
        np.testing.assert_allclose(
            res.innovation,
            [2.0, 4.0, 4.133209, 2.229258, 0.879580], atol=1e-5)
        np.testing.assert_allclose(
            res.forecast_variance,
            [0.001, 0.00150005, 0.00267348, 0.0037825, 0.00474824], rtol=1e-4)

    def test_toy_moves_toward_true_relationship(self, estimator, toy_pair):
        res = estimator.filter(toy_pair)
        assert np.all(np.diff(res.hedge_ratio) > 0)
        assert abs(res.final_hedge_ratio - 2.0) < 0.2
        assert abs(res.innovation[-1]) < abs(res.innovation[1])

    def test_first_step_keeps_zero_prior(self, estimator, toy_pair):
        res = estimator.filter(toy_pair)
        # P_0 = 0 and no drift before the first observation
        assert res.hedge_ratio[0] == 0.0
        assert res.intercept[0] == 0.0
        assert res.forecast_variance[0] == pytest.approx(1e-3)
        np.testing.assert_array_equal(res.covariances[0], np.zeros((2, 2)))

    def test_second_step_variance(self, estimator, toy_pair):
        res = estimator.filter(toy_pair)
        vw = 1e-4 / (1 - 1e-4)
        # x_2 = (2, 1): Q_2 = Vw * (4 + 1) + Ve
        assert res.forecast_variance[1] == pytest.approx(5 * vw + 1e-3, rel=1e-12)

    def test_output_lengths(self, estimator, random_walk_pair):
        res = estimator.filter(random_walk_pair)
        n = len(random_walk_pair)
        assert len(res) == n
        assert res.covariances.shape == (n, 2, 2)
        frame = res.to_frame()
        assert list(frame.columns) == ["hedge_ratio", "intercept", "innovation",
                                       "forecast_variance", "forecast_std"]
        assert frame.index.equals(random_walk_pair.timestamps)

    def test_covariance_positive_semidefinite(self, estimator, random_walk_pair):
        res = estimator.filter(random_walk_pair)
        for P in res.covariances:
            assert np.allclose(P, P.T)
            assert np.linalg.eigvalsh(P).min() >= -1e-12

    def test_forecast_variance_positive(self, estimator, random_walk_pair):
        res = estimator.filter(random_walk_pair)
        assert np.all(res.forecast_variance > 0)
        assert np.all(np.isfinite(res.hedge_ratio))
        assert np.all(np.isfinite(res.intercept))

    def test_deterministic(self, estimator, random_walk_pair):
        a = estimator.filter(random_walk_pair)
        b = KalmanHedgeEstimator(1e-4, 1e-3).filter(random_walk_pair)
        np.testing.assert_array_equal(a.hedge_ratio, b.hedge_ratio)
        np.testing.assert_array_equal(a.intercept, b.intercept)
        np.testing.assert_array_equal(a.innovation, b.innovation)
        np.testing.assert_array_equal(a.forecast_variance, b.forecast_variance)

    def test_convergence_noise_free(self, estimator):
        res = estimator.filter(_sine_pair(200))
        assert abs(res.final_hedge_ratio - 2.0) < 0.01
        assert abs(res.final_intercept) < 0.05
        assert np.abs(res.innovation[50:]).max() < 0.05

    def test_convergence_by_step_50(self, estimator):
        res = estimator.filter(_sine_pair(50))
        assert abs(res.final_hedge_ratio - 2.0) < 0.05

    def test_zero_observation_variance_is_singular(self, toy_pair):
        kf = KalmanHedgeEstimator(delta=1e-4, observation_variance=0.0)
        with pytest.raises(SingularCovarianceError) as exc:
            kf.filter(toy_pair)
        assert exc.value.step == 1
        assert exc.value.forecast_variance == 0.0

    def test_negative_observation_variance_is_singular(self, toy_pair):
        kf = KalmanHedgeEstimator(delta=1e-4, observation_variance=-1.0)
        with pytest.raises(SingularCovarianceError):
            kf.filter(toy_pair)

    @pytest.mark.parametrize("delta", [0.0, 1.0, -0.1, 1.5])
    def test_delta_outside_unit_interval(self, delta):
        with pytest.raises(ValueError):
            KalmanHedgeEstimator(delta=delta)

    def test_outputs_are_read_only(self, estimator, toy_pair):
        res = estimator.filter(toy_pair)
        with pytest.raises(ValueError):
            res.hedge_ratio[0] = 1.0
        with pytest.raises(ValueError):
            res.covariances[0, 0, 0] = 1.0

    def test_iter_steps_matches_filter(self, estimator, random_walk_pair):
        res = estimator.filter(random_walk_pair)
        steps = list(estimator.iter_steps(random_walk_pair))
        assert len(steps) == len(res)
        state, out = steps[123]
        assert state.hedge_ratio == res.hedge_ratio[123]
        assert out.innovation == res.innovation[123]
        assert out.forecast_std == pytest.approx(res.forecast_std[123])


class TestKalmanStep:
    def test_pure_function(self):
        prior = KalmanState.initial()
        vw = np.eye(2) * 1e-4
        s1, o1 = kalman_step(prior, 3.0, 6.0, vw, 1e-3, step=2)
        s2, o2 = kalman_step(prior, 3.0, 6.0, vw, 1e-3, step=2)
        np.testing.assert_array_equal(s1.beta, s2.beta)
        np.testing.assert_array_equal(s1.cov, s2.cov)
        assert o1.innovation == o2.innovation
        np.testing.assert_array_equal(prior.beta, [0.0, 0.0])
        np.testing.assert_array_equal(prior.cov, np.zeros((2, 2)))

    def test_no_drift_leaves_zero_prior(self):
        state, out = kalman_step(KalmanState.initial(), 1.0, 2.0, None, 1e-3,
                                 step=1)
        np.testing.assert_array_equal(state.beta, [0.0, 0.0])
        assert out.innovation == 2.0
        assert out.forecast_variance == pytest.approx(1e-3)

    def test_singular_reports_step(self):
        with pytest.raises(SingularCovarianceError) as exc:
            kalman_step(KalmanState.initial(), 1.0, 2.0, None, 0.0, step=7)
        assert exc.value.step == 7
        assert "step 7" in str(exc.value)


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------
class TestDetectCrossings:
    def test_upper_and_lower_crossings(self):
        raw = detect_crossings([0, 2, 2, -2, 0, 0], np.ones(6), 1.0)
        np.testing.assert_array_equal(raw, [0, -1, 0, 1, 0, 0])

    def test_first_step_never_fires(self):
        raw = detect_crossings([5.0, 5.0], [1.0, 1.0], 1.0)
        np.testing.assert_array_equal(raw, [0, 0])

    def test_previous_on_band_counts_as_inside(self):
        raw = detect_crossings([1.0, 2.0, -1.0, -2.0], np.ones(4), 1.0)
        np.testing.assert_array_equal(raw, [0, -1, 0, 1])

    def test_threshold_multiplier_scales_band(self):
        e = [0.0, 0.7, 0.0]
        assert detect_crossings(e, np.ones(3), 1.0).tolist() == [0, 0, 0]
        assert detect_crossings(e, np.ones(3), 0.5).tolist() == [0, -1, 0]

    def test_length_mismatch(self):
        with pytest.raises(MalformedInputError):
            detect_crossings([0.0, 1.0], [1.0], 1.0)


class TestRegimeStateMachine:
    def test_transitions(self):
        m = RegimeStateMachine()
        assert m.state == Regime.NO_REGIME
        assert m.transition(0) == Signal.NO_EVENT
        assert m.transition(-1) == Signal.ENTER_SHORT_SPREAD
        assert m.state == Regime.SHORT_SPREAD
        assert m.transition(-1) == Signal.NO_EVENT
        assert m.transition(1) == Signal.ENTER_LONG_SPREAD
        assert m.state == Regime.LONG_SPREAD
        assert m.transition(0) == Signal.NO_EVENT
        assert m.state == Regime.LONG_SPREAD


class TestResidualSignalGenerator:
    def test_repeated_same_direction_fires_once(self):
        gen = ResidualSignalGenerator(1.0)
        res = gen.generate_from_arrays([0, 2, 0, 2, 0], np.ones(5))
        np.testing.assert_array_equal(res.raw, [0, -1, 0, -1, 0])
        np.testing.assert_array_equal(res.signal, [0, -1, 0, 0, 0])
        np.testing.assert_array_equal(res.regime, [0, -1, -1, -1, -1])
        assert res.n_signals == 1

    def test_toy_pair_fires_nothing(self, estimator, toy_pair):
        res = ResidualSignalGenerator(1.0).generate(estimator.filter(toy_pair))
        assert res.n_signals == 0
        np.testing.assert_array_equal(res.regime, np.zeros(5))

    def test_toy_shock_first_crossing(self, estimator, shocked_toy_pair):
        filt = estimator.filter(shocked_toy_pair)
        res = ResidualSignalGenerator(1.0).generate(filt)
        # the outlier lands while e_3 is still above its band, so step 4 is
        # not a fresh crossing; the overshoot at step 5 is
        assert filt.innovation[3] > res.band[3]
        assert filt.innovation[2] > res.band[2]
        np.testing.assert_array_equal(res.raw, [0, 0, 0, 0, 1])
        np.testing.assert_array_equal(res.signal, [0, 0, 0, 0, 1])

    def test_converged_shock_flips_twice(self, estimator):
        filt = estimator.filter(_sine_pair(200, shock=SHOCK_STEP))
        res = ResidualSignalGenerator(1.0).generate(filt)
        events = np.flatnonzero(res.signal)
        np.testing.assert_array_equal(events, [SHOCK_STEP, SHOCK_STEP + 1])
        assert res.signal[SHOCK_STEP] == Signal.ENTER_SHORT_SPREAD
        assert res.signal[SHOCK_STEP + 1] == Signal.ENTER_LONG_SPREAD
        assert filt.innovation[SHOCK_STEP] > res.band[SHOCK_STEP]

    def test_aggressive_band_fires_more(self, estimator):
        filt = estimator.filter(_sine_pair(200, shock=SHOCK_STEP))
        res = ResidualSignalGenerator(0.5).generate(filt)
        events = np.flatnonzero(res.signal)
        np.testing.assert_array_equal(events, [149, 150, 161, 167])
        np.testing.assert_array_equal(res.signal[events], [-1, 1, -1, 1])

    def test_clean_series_never_fires(self, estimator):
        res = ResidualSignalGenerator(1.0).generate(
            estimator.filter(_sine_pair(200)))
        assert res.n_signals == 0

    def test_signals_alternate(self, estimator, random_walk_pair):
        res = ResidualSignalGenerator(1.0).generate(
            estimator.filter(random_walk_pair))
        fired = res.signal[res.signal != 0]
        assert len(fired) > 2
        assert np.all(fired[1:] != fired[:-1])

    def test_matches_forward_fill_edge_detection(self, estimator, random_walk_pair):
        filt = estimator.filter(random_walk_pair)
        res = ResidualSignalGenerator(1.0).generate(filt)

        regime = pd.Series(res.raw, dtype=float).replace(0, np.nan).ffill()
        prev = regime.shift()
        flips = regime.notna() & (prev.isna() | (regime != prev))
        expected = np.where(flips, regime.fillna(0), 0).astype(int)

        np.testing.assert_array_equal(res.signal, expected)
        assert res.n_signals == int(flips.sum())

    def test_events_labels(self):
        res = ResidualSignalGenerator(1.0).generate_from_arrays(
            [0, 2, -2], np.ones(3))
        assert res.events().tolist() == ["ENTER_SHORT_SPREAD",
                                         "ENTER_LONG_SPREAD"]

    def test_invalid_multiplier(self):
        with pytest.raises(ValueError):
            ResidualSignalGenerator(0.0)

    def test_index_length_mismatch(self):
        gen = ResidualSignalGenerator(1.0)
        with pytest.raises(MalformedInputError, match="timestamps"):
            gen.generate_from_arrays([0.0, 1.0, 2.0], np.ones(3),
                                     index=pd.RangeIndex(2))


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------
class TestPositionSimulator:
    def test_lag_sizing_and_hold(self):
        filt = _filter_result([0, 2, 2, -2, 0, 0], np.ones(6),
                              hedge=[1, 2, 3, 4, 5, 6])
        signals = ResidualSignalGenerator(1.0).generate(filt)
        pos = PositionSimulator(notional=1000).simulate(signals, filt)

        np.testing.assert_array_equal(pos.lagged_signal, [0, 0, -1, 0, 1, 0])
        np.testing.assert_allclose(pos.pos_x, [0, 0, 3000, 3000, -5000, -5000])
        np.testing.assert_allclose(pos.pos_y, [0, 0, -1000, -1000, 1000, 1000])
        assert pos.n_trades == 2
        np.testing.assert_array_equal(pos.direction, [0, 0, -1, -1, 1, 1])

    def test_signal_on_last_step_never_trades(self, estimator, shocked_toy_pair):
        filt = estimator.filter(shocked_toy_pair)
        signals = ResidualSignalGenerator(1.0).generate(filt)
        pos = PositionSimulator().simulate(signals, filt)
        assert not pos.pos_x.any()
        assert not pos.pos_y.any()

    def test_converged_shock_positions(self, estimator):
        filt = estimator.filter(_sine_pair(200, shock=SHOCK_STEP))
        signals = ResidualSignalGenerator(1.0).generate(filt)
        pos = PositionSimulator(notional=1000).simulate(signals, filt)

        assert not pos.pos_y[:SHOCK_STEP + 1].any()
        # short spread acted on the bar after the shock
        t = SHOCK_STEP + 1
        assert pos.pos_y[t] == -1000
        assert pos.pos_x[t] == pytest.approx(1000 * filt.hedge_ratio[t])
        assert filt.hedge_ratio[t] == pytest.approx(2.110161, abs=1e-4)
        # then long spread, held to the end
        t = SHOCK_STEP + 2
        np.testing.assert_allclose(pos.pos_y[t:], 1000)
        np.testing.assert_allclose(pos.pos_x[t:], -1000 * filt.hedge_ratio[t])

    def test_length_mismatch(self):
        filt = _filter_result([0, 1, 2], np.ones(3))
        signals = ResidualSignalGenerator(1.0).generate_from_arrays(
            [0, 1], np.ones(2))
        with pytest.raises(MalformedInputError):
            PositionSimulator().simulate(signals, filt)


# ---------------------------------------------------------------------------
# PnL
# ---------------------------------------------------------------------------
class TestPnLAccumulator:
    @staticmethod
    def _positions(pos_x, pos_y):
        n = len(pos_x)
        return PositionResult(pd.RangeIndex(n), np.zeros(n, dtype=int),
                              np.asarray(pos_x, dtype=float),
                              np.asarray(pos_y, dtype=float))

    def test_hand_computed(self):
        pair = TimeSeriesPair.from_arrays([10, 11, 12, 11], [20, 21, 23, 22])
        pos = self._positions([0, -500, -500, -500], [0, 1000, 1000, 1000])
        pnl = PnLAccumulator().accumulate(pos, pair)
        assert np.isnan(pnl.daily_pnl[0])
        assert np.isnan(pnl.cumulative_pnl[0])
        np.testing.assert_allclose(pnl.daily_pnl[1:], [500, 1500, -500])
        np.testing.assert_allclose(pnl.cumulative_pnl[1:], [500, 2000, 1500])
        assert pnl.total == pytest.approx(1500)

    def test_losses_reduce_total(self):
        pair = TimeSeriesPair.from_arrays([10, 10, 10], [20, 19, 18])
        pos = self._positions([0, 0, 0], [1000, 1000, 1000])
        pnl = PnLAccumulator().accumulate(pos, pair)
        np.testing.assert_allclose(pnl.cumulative_pnl[1:], [-1000, -2000])

    def test_flat_prices_earn_nothing(self):
        pair = TimeSeriesPair.from_arrays([10, 10, 10, 10], [20, 20, 20, 20])
        pos = self._positions([-2000] * 4, [1000] * 4)
        pnl = PnLAccumulator().accumulate(pos, pair)
        np.testing.assert_array_equal(pnl.daily_pnl[1:], [0, 0, 0])

    def test_cumulative_is_sum_of_daily(self, estimator, random_walk_pair):
        filt = estimator.filter(random_walk_pair)
        signals = ResidualSignalGenerator(1.0).generate(filt)
        pos = PositionSimulator().simulate(signals, filt)
        pnl = PnLAccumulator().accumulate(pos, random_walk_pair)
        assert pnl.total == pytest.approx(np.nansum(pnl.daily_pnl), rel=1e-9)
        np.testing.assert_allclose(pnl.cumulative_pnl[1:],
                                   np.cumsum(pnl.daily_pnl[1:]))

    def test_converged_shock_first_day(self, estimator):
        pair = _sine_pair(200, shock=SHOCK_STEP)
        filt = estimator.filter(pair)
        signals = ResidualSignalGenerator(1.0).generate(filt)
        pos = PositionSimulator().simulate(signals, filt)
        pnl = PnLAccumulator().accumulate(pos, pair)

        t = SHOCK_STEP + 1
        expected = (pos.pos_x[t] * (pair.price_x[t] - pair.price_x[t - 1])
                    + pos.pos_y[t] * (pair.price_y[t] - pair.price_y[t - 1]))
        assert pnl.daily_pnl[t] == pytest.approx(expected)
        # short spread profits as the outlier reverts
        assert pnl.daily_pnl[t] > 0
        np.testing.assert_array_equal(pnl.daily_pnl[1:t], 0.0)

    def test_performance_summary(self):
        pair = TimeSeriesPair.from_arrays([10, 11, 12, 11], [20, 21, 23, 22])
        pos = PositionResult(pd.RangeIndex(4), np.array([0, 1, 0, 0]),
                             np.array([0, -500, -500, -500.0]),
                             np.array([0, 1000, 1000, 1000.0]))
        pnl = PnLAccumulator().accumulate(pos, pair)
        perf = performance_summary(pnl, pos)
        assert perf["Total PnL"] == pytest.approx(1500)
        assert perf["Max Drawdown"] == pytest.approx(-500)
        assert perf["Hit Rate"] == pytest.approx(2 / 3)
        assert perf["Trades"] == 1
        assert perf["Days in Market"] == 3

    def test_length_mismatch(self):
        pair = TimeSeriesPair.from_arrays([1, 2, 3], [1, 2, 3])
        with pytest.raises(MalformedInputError):
            PnLAccumulator().accumulate(self._positions([0, 0], [0, 0]), pair)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
