"""Figures for pair runs and the screening stage."""

from kalman_pairs.visualization.pairs_plots import (
    generate_pair_figures,
    plot_hedge_ratio,
    plot_pnl_curve,
    plot_positions,
    plot_residual_signals,
    plot_screening_pvalues,
)
