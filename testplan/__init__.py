"""Test plan extractor: turns requirement documents into normalized records."""

__version__ = "0.1.0"
