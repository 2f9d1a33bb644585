"""Core agent pipeline."""
