"""mediajobs: cross-provider generative media job engine."""

__version__ = "0.1.0"
