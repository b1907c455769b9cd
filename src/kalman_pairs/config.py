"""
config.py
---------
Centralised configuration for the Kalman pairs pipeline.
All parameters are read from environment variables with sensible defaults,
so the same code runs the default and the aggressive threshold profiles.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [s.strip().upper() for s in raw.split(",") if s.strip()]


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "")
    return int(raw) if raw.strip() else None


@dataclass
class FilterConfig:
    """Two-state (hedge, intercept) random-walk Kalman filter."""
    delta:                float = float(os.getenv("KP_DELTA", "0.0001"))  # state drift
    observation_variance: float = float(os.getenv("KP_VE",    "0.001"))   # Ve


@dataclass
class SignalConfig:
    """Residual band crossing parameters."""
    threshold_multiplier: float = float(os.getenv("KP_THRESHOLD", "1.0"))  # k in k*sqrt(Q)


@dataclass
class PositionConfig:
    """Leg sizing."""
    notional: float = float(os.getenv("KP_NOTIONAL", "1000"))


@dataclass
class ScreeningConfig:
    """Unit-root pre-filter on the raw price spread."""
    enabled:       bool          = os.getenv("KP_SCREEN", "true").lower() == "true"
    pvalue_cutoff: float         = float(os.getenv("KP_PVALUE_CUTOFF", "0.10"))
    max_lags:      Optional[int] = field(
        default_factory=lambda: _env_optional_int("KP_ADF_MAXLAG")
    )


@dataclass
class DataConfig:
    """Universe and history window. The reference is the common X leg."""
    reference:  str       = os.getenv("KP_REFERENCE", "EWA").upper()
    candidates: List[str] = field(
        default_factory=lambda: _env_list("KP_TICKERS", "EWC,EWH,EWS,EWG,EWJ")
    )
    start:      str       = os.getenv("KP_START", "2015-01-01")
    end:        str       = os.getenv("KP_END",   "2024-12-31")


@dataclass
class PipelineConfig:
    """Master configuration aggregating all sub-configs."""
    filter:    FilterConfig    = field(default_factory=FilterConfig)
    signals:   SignalConfig    = field(default_factory=SignalConfig)
    positions: PositionConfig  = field(default_factory=PositionConfig)
    screening: ScreeningConfig = field(default_factory=ScreeningConfig)
    data:      DataConfig      = field(default_factory=DataConfig)

    # Paths
    output_dir:  str           = os.getenv("KP_OUTPUT_DIR", "outputs")
    log_level:   str           = os.getenv("LOG_LEVEL", "INFO")

    # Fan-out width; None lets the executor decide
    max_workers: Optional[int] = field(
        default_factory=lambda: _env_optional_int("KP_WORKERS")
    )


AGGRESSIVE_THRESHOLD = 0.5


def aggressive_profile(cfg: PipelineConfig) -> PipelineConfig:
    """Copy of cfg with the narrower 0.5*sqrt(Q) entry band."""
    return replace(
        cfg,
        signals=replace(cfg.signals, threshold_multiplier=AGGRESSIVE_THRESHOLD),
    )


def build_profiles(cfg: PipelineConfig) -> Dict[str, PipelineConfig]:
    """Named threshold profiles derived from one base configuration."""
    return {
        "default":    cfg,
        "aggressive": aggressive_profile(cfg),
    }


# Singleton instance used throughout the project
CONFIG = PipelineConfig()
