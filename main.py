"""
Kalman Filter Pairs Trading -- Main Pipeline
=============================================
Screens every candidate against a common reference leg, runs the Kalman
hedge estimator, residual band signals, lagged positions and PnL for each
pair that passes, then writes CSVs, figures and a summary table.

Usage:
    python main.py                              # synthetic universe
    python main.py --mode live                  # yfinance (EWA vs EWC, ...)
    python main.py --profile both               # k = 1.0 and k = 0.5
    python main.py --mode live --reference SPY --tickers QQQ,IWM
    KP_DELTA=0.001 python main.py               # env overrides, see config.py
"""

import argparse
import os
import sys
from dataclasses import replace
from pathlib import Path

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT / "src"))

from kalman_pairs.config import CONFIG, PipelineConfig, build_profiles
from kalman_pairs.data_loader import (generate_synthetic_universe,
                                      load_price_table, universe_summary)
from kalman_pairs.exceptions import KalmanPairsError
from kalman_pairs.pipeline import PairsPipeline, PipelineRun
from kalman_pairs.utils import get_logger
from kalman_pairs.visualization.pairs_plots import (generate_pair_figures,
                                                    plot_screening_pvalues)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def _args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Kalman Filter Pairs Trading")
    p.add_argument("--mode",       default="synthetic",
                   choices=["synthetic", "live"])
    p.add_argument("--profile",    default="default",
                   choices=["default", "aggressive", "both"])
    p.add_argument("--reference",  default=None,
                   help="Common X leg (default from KP_REFERENCE)")
    p.add_argument("--tickers",    default=None,
                   help="Comma-separated Y legs (default from KP_TICKERS)")
    p.add_argument("--start",      default=None)
    p.add_argument("--end",        default=None)
    p.add_argument("--delta",      type=float, default=None)
    p.add_argument("--ve",         type=float, default=None)
    p.add_argument("--threshold",  type=float, default=None)
    p.add_argument("--notional",   type=float, default=None)
    p.add_argument("--workers",    type=int,   default=None)
    p.add_argument("--output-dir", default=None)
    p.add_argument("--no-plots",   action="store_true")
    p.add_argument("--no-screen",  action="store_true")
    return p.parse_args(argv)


def _banner(msg: str) -> None:
    print(f"\n{'='*60}\n  {msg}\n{'='*60}")


def build_config(args: argparse.Namespace,
                 base: PipelineConfig = CONFIG) -> PipelineConfig:
    """Apply command-line overrides on top of the environment config."""
    cfg = base
    if args.delta is not None:
        cfg = replace(cfg, filter=replace(cfg.filter, delta=args.delta))
    if args.ve is not None:
        cfg = replace(cfg, filter=replace(cfg.filter,
                                          observation_variance=args.ve))
    if args.threshold is not None:
        cfg = replace(cfg, signals=replace(cfg.signals,
                                           threshold_multiplier=args.threshold))
    if args.notional is not None:
        cfg = replace(cfg, positions=replace(cfg.positions,
                                             notional=args.notional))
    if args.no_screen:
        cfg = replace(cfg, screening=replace(cfg.screening, enabled=False))

    data = cfg.data
    if args.reference:
        data = replace(data, reference=args.reference.upper())
    if args.tickers:
        data = replace(data, candidates=[t.strip().upper()
                                         for t in args.tickers.split(",")
                                         if t.strip()])
    if args.start:
        data = replace(data, start=args.start)
    if args.end:
        data = replace(data, end=args.end)
    cfg = replace(cfg, data=data)

    if args.workers is not None:
        cfg = replace(cfg, max_workers=args.workers)
    if args.output_dir:
        cfg = replace(cfg, output_dir=args.output_dir)
    return cfg


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------
def load_universe(mode: str, cfg: PipelineConfig):
    """PriceTable plus the reference and candidate identifiers to run."""
    if mode == "live":
        table = load_price_table(cfg.data.reference, cfg.data.candidates,
                                 cfg.data.start, cfg.data.end)
        reference = cfg.data.reference
        candidates = [c for c in cfg.data.candidates if c in table]
    else:
        reference = "REF"
        table = generate_synthetic_universe(reference=reference, seed=42)
        candidates = table.candidates(reference)
    return table, reference, candidates


def write_outputs(run: PipelineRun, profile: str, cfg: PipelineConfig,
                  make_plots: bool) -> None:
    out_dir = os.path.join(cfg.output_dir, profile)
    data_dir = os.path.join(out_dir, "data")
    fig_dir = os.path.join(out_dir, "figures")
    os.makedirs(data_dir, exist_ok=True)

    for res in run.results.values():
        fname = res.label.replace("/", "_") + ".csv"
        res.to_frame().to_csv(os.path.join(data_dir, fname))
        if make_plots:
            generate_pair_figures(res, fig_dir)

    summary = run.summary_table()
    if not summary.empty:
        summary.to_csv(os.path.join(out_dir, "summary.csv"))

    screening = run.screening_table()
    if not screening.empty:
        screening.to_csv(os.path.join(out_dir, "screening.csv"))
        if make_plots:
            plot_screening_pvalues(screening, cfg.screening.pvalue_cutoff,
                                   fig_dir)


def print_run(run: PipelineRun, profile: str) -> None:
    _banner(f"Profile: {profile}  (reference: {run.reference})")

    screening = run.screening_table()
    if not screening.empty:
        print("\nStationarity screen:")
        print(screening[["adf_stat", "adf_pvalue", "passed"]]
              .to_string(float_format=lambda v: f"{v:.4f}"))

    for res in run.results.values():
        print()
        print(res.get_summary())

    summary = run.summary_table()
    if not summary.empty:
        print("\nSummary:")
        print(summary.to_string(float_format=lambda v: f"{v:,.4f}"))
    if run.skipped:
        print(f"\nSkipped (failed screen): {', '.join(run.skipped)}")
    for cand, err in sorted(run.failures.items()):
        print(f"Failed: {cand}: {err}")


def main(argv=None) -> int:
    """Run the complete Kalman pairs pipeline."""
    args = _args(argv)
    cfg = build_config(args)
    log = get_logger("kalman_pairs",
                     log_dir=os.path.join(cfg.output_dir, "logs"),
                     level=cfg.log_level)

    _banner("KALMAN FILTER PAIRS TRADING")
    try:
        table, reference, candidates = load_universe(args.mode, cfg)
    except KalmanPairsError as e:
        log.error("Data acquisition failed: %s", e)
        return 1

    for line in universe_summary(table):
        log.info(line)

    profiles = build_profiles(cfg)
    selected = list(profiles) if args.profile == "both" else [args.profile]

    for name in selected:
        pipeline = PairsPipeline(profiles[name])
        run = pipeline.run(table, reference, candidates)
        print_run(run, name)
        write_outputs(run, name, profiles[name], make_plots=not args.no_plots)

    log.info("Outputs written to %s", os.path.abspath(cfg.output_dir))
    return 0


if __name__ == "__main__":
    sys.exit(main())
