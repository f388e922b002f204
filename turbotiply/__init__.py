"""Gameplay core for the Turbotiply multiplication drill."""

__version__ = "0.1.0"
