"""
Kalman Pairs Visualizations
===========================

Dark-theme figures for one pair run and for the screening stage.

Figure Catalog:
    1. Kalman hedge ratio and intercept (time-varying beta)
    2. Residual with +/- k*sqrt(Q) band and regime-flip markers
    3. Leg positions (sustained notional exposure)
    4. Cumulative PnL with underwater curve
    5. Screening p-values per candidate (ADF on raw spread)
"""

import logging
import os
from typing import Dict, Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import matplotlib.gridspec as gridspec
import seaborn as sns

from kalman_pairs.signals import Signal

log = logging.getLogger(__name__)

# -- Professional dark style --
plt.rcParams.update({
    "figure.facecolor": "#0d1117",
    "axes.facecolor": "#161b22",
    "axes.edgecolor": "#30363d",
    "axes.labelcolor": "#c9d1d9",
    "axes.grid": True,
    "grid.color": "#21262d",
    "grid.alpha": 0.6,
    "text.color": "#c9d1d9",
    "xtick.color": "#8b949e",
    "ytick.color": "#8b949e",
    "font.family": "sans-serif",
    "font.size": 10,
    "axes.titlesize": 13,
    "axes.labelsize": 11,
    "legend.facecolor": "#161b22",
    "legend.edgecolor": "#30363d",
    "legend.fontsize": 9,
    "figure.dpi": 150,
    "savefig.dpi": 200,
    "savefig.bbox": "tight",
    "savefig.facecolor": "#0d1117",
})

COLORS = ["#58a6ff", "#f0883e", "#3fb950", "#bc8cff",
          "#f778ba", "#79c0ff", "#d2a8ff", "#ffa657"]
RED = "#f85149"
GREY = "#8b949e"


def _save(fig, save_path, name) -> str:
    os.makedirs(save_path, exist_ok=True)
    fpath = os.path.join(save_path, name)
    fig.savefig(fpath, dpi=200, bbox_inches="tight",
                facecolor=fig.get_facecolor())
    plt.close(fig)
    log.info("    [FIG] %s", fpath)
    return fpath


def _slug(label: str) -> str:
    return label.replace("/", "_").replace(" ", "")


def plot_hedge_ratio(result, save_path) -> str:
    """Fig 1: Kalman filter hedge ratio and intercept."""
    fig, axes = plt.subplots(2, 1, figsize=(14, 8), height_ratios=[2, 1],
                             sharex=True)
    filt = result.filter.to_frame()

    axes[0].plot(filt.index, filt["hedge_ratio"], color=COLORS[0],
                 linewidth=1.2, label="Kalman Hedge Ratio")
    axes[0].axhline(result.filter.final_hedge_ratio, color=COLORS[1],
                    linestyle="--", linewidth=0.8,
                    label=f"Final: {result.filter.final_hedge_ratio:.4f}")
    axes[0].set_title(f"Time-Varying Hedge Ratio: {result.label}",
                      fontsize=13, fontweight="bold")
    axes[0].set_ylabel("Hedge Ratio (beta)")
    axes[0].legend()

    axes[1].plot(filt.index, filt["intercept"], color=COLORS[3], linewidth=1)
    axes[1].set_title("Intercept", fontweight="bold")
    axes[1].set_ylabel("Intercept")

    return _save(fig, save_path, f"{_slug(result.label)}_01_hedge_ratio.png")


def plot_residual_signals(result, save_path) -> str:
    """Fig 2: Residual, forecast band and regime flips."""
    fig, ax = plt.subplots(figsize=(14, 6))
    filt = result.filter.to_frame()
    sig = result.signals.to_frame()

    e = filt["innovation"]
    band = sig["band"]
    ax.plot(e.index, e, color=COLORS[0], linewidth=0.8, label="Residual e_t")
    ax.plot(band.index, band, color=RED, linestyle="--", linewidth=0.7,
            label="+/- band")
    ax.plot(band.index, -band, color=RED, linestyle="--", linewidth=0.7)
    ax.axhline(0, color=GREY, linewidth=0.5)

    longs = sig.index[sig["signal"] == Signal.ENTER_LONG_SPREAD]
    shorts = sig.index[sig["signal"] == Signal.ENTER_SHORT_SPREAD]
    ax.scatter(longs, e.loc[longs], marker="^", color=COLORS[2], s=45,
               zorder=3, label="Enter long spread")
    ax.scatter(shorts, e.loc[shorts], marker="v", color=RED, s=45,
               zorder=3, label="Enter short spread")

    # the first steps carry the warm-up residuals; keep them off-scale
    lim = np.nanpercentile(np.abs(e.iloc[len(e) // 20:]), 99)
    if np.isfinite(lim) and lim > 0:
        ax.set_ylim(-1.5 * lim, 1.5 * lim)

    ax.set_title(f"Kalman Residual & Signals: {result.label}",
                 fontsize=13, fontweight="bold")
    ax.set_ylabel("Residual")
    ax.legend(loc="upper right", ncol=2, fontsize=8)

    return _save(fig, save_path, f"{_slug(result.label)}_02_residual_signals.png")


def plot_positions(result, save_path) -> str:
    """Fig 3: Notional positions per leg."""
    fig, ax = plt.subplots(figsize=(14, 5))
    pos = result.positions.to_frame()

    ax.step(pos.index, pos["pos_y"], where="post", color=COLORS[0],
            linewidth=1.2, label=f"{result.pair.name_y} (Y)")
    ax.step(pos.index, pos["pos_x"], where="post", color=COLORS[1],
            linewidth=1.2, label=f"{result.pair.name_x} (X)")
    ax.axhline(0, color=GREY, linewidth=0.5)
    ax.set_title("Leg Positions (Notional)", fontsize=13, fontweight="bold")
    ax.set_ylabel("Exposure ($)")
    ax.legend()

    return _save(fig, save_path, f"{_slug(result.label)}_03_positions.png")


def plot_pnl_curve(result, perf_summary: Optional[Dict], save_path) -> str:
    """Fig 4: Cumulative PnL with drawdown."""
    fig = plt.figure(figsize=(14, 8))
    gs = gridspec.GridSpec(2, 1, height_ratios=[3, 1], hspace=0.2)

    pnl = result.pnl.to_frame()
    dd = pd.Series(result.pnl.drawdown, index=pnl.index)

    ax1 = fig.add_subplot(gs[0])
    ax1.plot(pnl.index, pnl["cumulative_pnl"], color=COLORS[0], linewidth=1.5)
    ax1.axhline(0, color=GREY, linestyle="--", linewidth=0.5)
    ax1.set_title(f"Cumulative PnL: {result.label}",
                  fontsize=14, fontweight="bold")
    ax1.set_ylabel("PnL ($)")

    if perf_summary:
        ps = perf_summary
        ann_text = (
            f"Total: {ps['Total PnL']:,.2f} | "
            f"Sharpe: {ps['Ann. Sharpe']:.2f} | "
            f"MaxDD: {ps['Max Drawdown']:,.2f} | "
            f"Trades: {ps['Trades']}"
        )
        ax1.text(0.02, 0.05, ann_text, transform=ax1.transAxes, fontsize=9,
                 color="#c9d1d9", bbox=dict(boxstyle="round,pad=0.3",
                                            facecolor="#21262d",
                                            edgecolor="#30363d", alpha=0.9))

    ax2 = fig.add_subplot(gs[1], sharex=ax1)
    ax2.fill_between(dd.index, 0, dd.fillna(0), color=RED, alpha=0.5)
    ax2.set_ylabel("Drawdown ($)")
    ax2.set_title("Underwater Curve", fontweight="bold", fontsize=11)

    return _save(fig, save_path, f"{_slug(result.label)}_04_pnl.png")


def plot_screening_pvalues(screening_table: pd.DataFrame, cutoff: float,
                           save_path, name: str = "screening_pvalues.png") -> str:
    """Fig 5: ADF p-value per candidate against the gate cutoff."""
    df = screening_table.reset_index()
    fig, ax = plt.subplots(figsize=(12, max(3, 0.5 * len(df) + 1)))

    palette = [COLORS[2] if p else RED for p in df["passed"]]
    sns.barplot(data=df, x="adf_pvalue", y="pair", hue="pair",
                palette=palette, legend=False, ax=ax)
    ax.axvline(cutoff, color=COLORS[1], linestyle="--", linewidth=1,
               label=f"Cutoff: {cutoff:.2f}")
    ax.set_xlim(0, 1)
    ax.set_xlabel("ADF p-value (raw spread)")
    ax.set_ylabel("")
    ax.set_title("Stationarity Screen", fontsize=13, fontweight="bold")
    ax.legend(loc="lower right")

    return _save(fig, save_path, name)


def generate_pair_figures(result, save_path) -> Dict[str, str]:
    """All per-pair figures; returns {figure: path}."""
    log.info("  Generating figures for %s", result.label)
    return {
        "hedge_ratio": plot_hedge_ratio(result, save_path),
        "residual_signals": plot_residual_signals(result, save_path),
        "positions": plot_positions(result, save_path),
        "pnl": plot_pnl_curve(result, result.performance_summary(), save_path),
    }
