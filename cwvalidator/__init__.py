"""Load generation and feature, stress and performance validation for a metrics and logs agent."""

__version__ = "0.1.0"