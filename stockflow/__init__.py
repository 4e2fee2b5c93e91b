"""Inventory planning engine: EOQ, sensitivity, distribution optimization and network layout."""

__version__ = "0.1.0"
