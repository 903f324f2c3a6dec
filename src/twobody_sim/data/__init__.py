"""Preset data for the two-body simulator."""
