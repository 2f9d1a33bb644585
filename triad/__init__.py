"""Triad - planner / researcher / synthesizer agent pipeline."""

__version__ = "1.0.0"
