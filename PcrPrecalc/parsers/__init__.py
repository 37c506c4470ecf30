"""
PE/COFF parsing for measured boot binaries.

This module contains the section table parser and the Authenticode hash.
"""

# Don't import modules at initialization time to avoid import errors
__all__ = ['pe_parser', 'authenticode']

__version__ = "1.0.0"
