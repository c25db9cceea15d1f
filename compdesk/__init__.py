"""Compensation Desk: MLM network compensation analytics service."""

__version__ = "1.0.0"
