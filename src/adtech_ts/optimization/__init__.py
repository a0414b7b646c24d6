"""Forecast-driven ad selection."""
