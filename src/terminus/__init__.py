"""Terminus - keyboard-driven modal file manager."""

__version__ = "0.1.0"
__build_date__ = ""  # Stamped by release builds
