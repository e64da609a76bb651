"""Contracts app package.

Binding allocations of rental units to vendors: the availability index,
the booking confirmation handler and the periodic contract status sweeps.
"""
