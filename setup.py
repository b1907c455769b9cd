from setuptools import setup, find_packages

setup(
    name="kalman-pairs-trading",
    version="1.0.0",
    description=(
        "Kalman filter pairs trading: adaptive hedge ratio and intercept, "
        "edge-triggered residual band signals, lagged positions and "
        "mark-to-market PnL, with an ADF screening gate"
    ),
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24.0", "pandas>=2.0.0", "statsmodels>=0.14.0,<0.15",
        "matplotlib>=3.7.0", "seaborn>=0.13.0", "yfinance>=0.2.28",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    keywords=[
        "pairs-trading", "kalman-filter", "hedge-ratio",
        "statistical-arbitrage", "mean-reversion",
    ],
)
