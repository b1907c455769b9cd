"""
Pair Pipeline: Screening, Filtering, Signals, Positions and PnL
================================================================

Composes the four core stages for one pair and fans independent pairs out
to a thread pool.

Architecture:
    1. Screen: ADF on the raw spread of (candidate, reference); pairs
       above the p-value cutoff never reach the core.
    2. Filter: Kalman hedge ratio / intercept / residual / variance.
    3. Signals: band crossings -> regime flips.
    4. Positions: one-step-lagged, forward-held leg sizes.
    5. PnL: daily mark-to-market and running total.

Every candidate is paired with the same reference leg (the candidate is Y,
the reference is X). Tasks share only the immutable PriceTable; each task
owns its own filter state and output sequences, so no locking is needed.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from kalman_pairs.config import CONFIG, PipelineConfig
from kalman_pairs.exceptions import KalmanPairsError
from kalman_pairs.kalman_filter import FilterResult, KalmanHedgeEstimator
from kalman_pairs.pnl import PnLAccumulator, PnLResult, performance_summary
from kalman_pairs.positions import PositionResult, PositionSimulator
from kalman_pairs.screening import ScreeningResult, StationarityScreen
from kalman_pairs.series import PriceTable, TimeSeriesPair
from kalman_pairs.signals import ResidualSignalGenerator, SignalResult
from kalman_pairs.utils import format_currency, timeit

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairResult:
    """All stage outputs for one pair."""

    pair: TimeSeriesPair
    filter: FilterResult
    signals: SignalResult
    positions: PositionResult
    pnl: PnLResult
    screening: Optional[ScreeningResult] = None

    @property
    def label(self) -> str:
        return self.pair.label

    def to_frame(self) -> pd.DataFrame:
        """Timestamp-indexed join of prices and every stage output."""
        return pd.concat([
            self.pair.to_frame(),
            self.filter.to_frame(),
            self.signals.to_frame(),
            self.positions.to_frame(),
            self.pnl.to_frame(),
        ], axis=1)

    def performance_summary(self) -> Dict:
        return performance_summary(self.pnl, self.positions)

    def get_summary(self) -> str:
        """Return formatted per-pair report."""
        perf = self.performance_summary()
        lines = [
            "=" * 60,
            f"KALMAN PAIR: {self.label}",
            "=" * 60,
            f"Observations:       {len(self.pair)}",
            f"Final hedge ratio:  {self.filter.final_hedge_ratio:.6f}",
            f"Final intercept:    {self.filter.final_intercept:.6f}",
            f"Regime flips:       {self.signals.n_signals}",
        ]
        if self.screening is not None:
            lines.append(f"ADF p-value:        {self.screening.adf_pvalue:.6f}")
        lines += [
            "-" * 60,
            f"Total PnL:          {format_currency(perf['Total PnL'])}",
            f"Ann. Sharpe:        {perf['Ann. Sharpe']:.2f}",
            f"Max Drawdown:       {format_currency(perf['Max Drawdown'])}",
            f"Hit Rate:           {perf['Hit Rate'] * 100:.1f}%",
            f"Days in Market:     {perf['Days in Market']}",
            "=" * 60,
        ]
        return "\n".join(lines)


@dataclass
class PipelineRun:
    """Fan-in of one pipeline run over a universe."""

    reference: str
    results: Dict[str, PairResult] = field(default_factory=dict)
    screening: Dict[str, ScreeningResult] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    def summary_table(self) -> pd.DataFrame:
        """One row per traded pair, sorted by total PnL."""
        rows = []
        for name, res in self.results.items():
            perf = res.performance_summary()
            rows.append({
                "pair": res.label,
                "adf_pvalue": res.screening.adf_pvalue if res.screening else np.nan,
                "final_hedge": res.filter.final_hedge_ratio,
                "signals": res.signals.n_signals,
                **perf,
            })
        if not rows:
            return pd.DataFrame()
        return pd.DataFrame(rows).set_index("pair").sort_values(
            "Total PnL", ascending=False
        )

    def screening_table(self) -> pd.DataFrame:
        if not self.screening:
            return pd.DataFrame()
        return pd.DataFrame(
            [r.to_dict() for r in self.screening.values()]
        ).set_index("pair").sort_values("adf_pvalue")


class PairsPipeline:
    """
    End-to-end Kalman pairs pipeline.

    Parameters
    ----------
    config : PipelineConfig
        Filter, signal, position and screening parameters.
    """

    def __init__(self, config: PipelineConfig = CONFIG):
        self.config = config
        self.estimator = KalmanHedgeEstimator(
            delta=config.filter.delta,
            observation_variance=config.filter.observation_variance,
        )
        self.signal_generator = ResidualSignalGenerator(
            threshold_multiplier=config.signals.threshold_multiplier
        )
        self.position_simulator = PositionSimulator(
            notional=config.positions.notional
        )
        self.accumulator = PnLAccumulator()

    @timeit
    def run_pair(self, pair: TimeSeriesPair,
                 screening: Optional[ScreeningResult] = None) -> PairResult:
        """Run the four core stages on one validated pair."""
        filt = self.estimator.filter(pair)
        signals = self.signal_generator.generate(filt)
        positions = self.position_simulator.simulate(signals, filt)
        pnl = self.accumulator.accumulate(positions, pair)

        log.info("%s: hedge=%.4f, %d flips, PnL=%s", pair.label,
                 filt.final_hedge_ratio, signals.n_signals,
                 format_currency(pnl.total))
        return PairResult(pair, filt, signals, positions, pnl, screening)

    def _screen(self, pair: TimeSeriesPair) -> ScreeningResult:
        # one screen per task: StationarityScreen keeps its last result
        screen = StationarityScreen(
            pvalue_cutoff=self.config.screening.pvalue_cutoff,
            max_lags=self.config.screening.max_lags,
        )
        return screen.test(pair)

    def _task(self, table: PriceTable, candidate: str,
              reference: str) -> Dict:
        """One pair task: build, screen, and (if it passes) run."""
        pair = table.pair(candidate, reference)
        screening = self._screen(pair) if self.config.screening.enabled else None
        if screening is not None and not screening.passed:
            return {"screening": screening, "result": None}
        return {"screening": screening,
                "result": self.run_pair(pair, screening)}

    @timeit
    def run(self, table: PriceTable, reference: str,
            candidates: Optional[Sequence[str]] = None) -> PipelineRun:
        """
        Screen and trade every candidate against the reference leg.

        Parameters
        ----------
        table : PriceTable
            Shared, read-only price table.
        reference : str
            Common X leg.
        candidates : sequence of str or None
            Y legs to evaluate; None means every other asset in the table.

        Returns
        -------
        PipelineRun
            results (passing pairs), screening (all screened), skipped
            (failed the gate) and failures (core errors, by candidate).
        """
        if reference not in table:
            raise KeyError(f"Reference leg {reference!r} not in price table")
        if candidates is None:
            candidates = table.candidates(reference)
        candidates = [c for c in candidates if c != reference]

        run = PipelineRun(reference=reference)
        missing = [c for c in candidates if c not in table]
        for cand in missing:
            log.warning("%s not in price table; not run", cand)
            run.failures[cand] = f"KeyError: {cand!r} not in price table"
        candidates = [c for c in candidates if c in table]

        log.info("Running %d candidates against %s (k=%.2f)", len(candidates),
                 reference, self.config.signals.threshold_multiplier)

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {
                executor.submit(self._task, table, cand, reference): cand
                for cand in candidates
            }
            for future in as_completed(futures):
                cand = futures[future]
                try:
                    outcome = future.result()
                except KalmanPairsError as e:
                    log.warning("%s/%s failed: %s", cand, reference, e)
                    run.failures[cand] = f"{type(e).__name__}: {e}"
                    continue

                if outcome["screening"] is not None:
                    run.screening[cand] = outcome["screening"]
                if outcome["result"] is None:
                    run.skipped.append(cand)
                else:
                    run.results[cand] = outcome["result"]

        run.skipped.sort()
        log.info("Done: %d traded, %d skipped, %d failed",
                 len(run.results), len(run.skipped), len(run.failures))
        return run
