"""Board-game news discovery and ranking core."""

__version__ = "0.1.0"
