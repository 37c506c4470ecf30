"""
Storage of precalculated measurements.

This module reads and writes the JSON measurements document and event log.
"""

__all__ = ['measurements']

__version__ = "1.0.0"
