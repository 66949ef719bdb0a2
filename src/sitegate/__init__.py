"""Sitegate - static sites with header and redirect rules."""

__version__ = "0.2.0"
