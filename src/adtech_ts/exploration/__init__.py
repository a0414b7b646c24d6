"""Exploratory summaries of the hourly ad data."""
