"""Game requirements normalization and compatibility scoring."""

__version__ = "0.1.0"
