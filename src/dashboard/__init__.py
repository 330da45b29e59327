"""Dashboard module for Ward-Census.

This module provides a FastAPI-based backend serving the ward dashboard:
outcome summaries, breakdowns, risk tiers and the running census.
"""

__version__ = "1.0.0"
