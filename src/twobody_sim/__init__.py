"""Interactive two-body gravitational simulation engine."""

__version__ = "1.0.0"
