"""Utility helpers for rdprune."""
