"""
tokenvest Core Module

Shared building blocks: the managed token contract, the exception
hierarchy, configuration, structured logging and metrics.
"""

__all__ = []
