"""Nucleus / whole-cell mask pairing and per-cell measurement."""

__version__ = "0.1"
