"""Local cache and lookup for the Russian numbering registry."""

__version__ = "0.1.0"
