"""Slot discovery service: recommendations, calendar grids and live activity."""
