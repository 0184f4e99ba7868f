"""Arborist: adjacency-list forest storage and tree queries."""

__version__ = "0.1.0"
