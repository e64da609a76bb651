"""Marketplace app package.

Stores the marketplace opening configuration consumed read-only by the
trial activation sweep and by contract scheduling.
"""
