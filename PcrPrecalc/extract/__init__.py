"""
Extraction of boot binaries from raw disk images.
"""

__all__ = ['dissect']
