"""Snapshot importers."""
