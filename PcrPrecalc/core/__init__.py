"""
Core data models, errors and configuration shared by the PCR precalculator.
"""

__all__ = ['models', 'errors', 'config']
