"""Adapters layer for Ward-Census.

This module contains input adapters that interface with the record store
exports. Adapters implement Port interfaces defined in the domain layer and
handle the transformation from external formats to domain records.
"""
