"""
conftest.py
-----------
Pytest configuration: puts src/ and the project root on sys.path so the
suite runs from a plain checkout, and forces a headless matplotlib backend.
"""

import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(ROOT, "src"))
sys.path.insert(0, ROOT)

import matplotlib

matplotlib.use("Agg")
