"""
PCR Precalculator Utilities Module

This module contains utility functions and helpers used throughout the package.
"""

from .utils import compare_pcr_values, hexdump

__all__ = ['compare_pcr_values', 'hexdump']

__version__ = "1.0.0"
